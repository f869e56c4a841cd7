"""Cycle Detector: strongly-connected components of the import graph.

Tarjan's algorithm, driven by an explicit work stack so that deep import
chains cannot hit Python's recursion limit.
"""

from codemap.models import CircularDependency, GraphEdge, GraphNode


def find_circular_dependencies(
    nodes: list[GraphNode], edges: list[GraphEdge]
) -> list[CircularDependency]:
    """Every SCC with two or more members, as ids plus relative-path labels.

    Roots are visited in node order and successors in edge order, so the
    result is deterministic for a given graph. Members are listed in the
    order they are popped off the Tarjan stack.
    """
    index_of = {node.id: i for i, node in enumerate(nodes)}
    n = len(nodes)
    adjacency: list[list[int]] = [[] for _ in range(n)]
    for edge in edges:
        s = index_of.get(edge.source)
        t = index_of.get(edge.target)
        if s is not None and t is not None and s != t:
            adjacency[s].append(t)

    index = [-1] * n
    lowlink = [0] * n
    on_stack = [False] * n
    stack: list[int] = []
    counter = 0
    cycles: list[CircularDependency] = []

    for root in range(n):
        if index[root] != -1:
            continue
        # (vertex, position of the next successor to visit)
        work: list[tuple[int, int]] = [(root, 0)]
        while work:
            v, pos = work[-1]
            if pos == 0:
                index[v] = lowlink[v] = counter
                counter += 1
                stack.append(v)
                on_stack[v] = True

            successors = adjacency[v]
            descended = False
            while pos < len(successors):
                w = successors[pos]
                pos += 1
                if index[w] == -1:
                    work[-1] = (v, pos)
                    work.append((w, 0))
                    descended = True
                    break
                if on_stack[w]:
                    lowlink[v] = min(lowlink[v], index[w])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[v])

            if lowlink[v] == index[v]:
                component: list[int] = []
                while True:
                    w = stack.pop()
                    on_stack[w] = False
                    component.append(w)
                    if w == v:
                        break
                if len(component) > 1:
                    cycles.append(CircularDependency(
                        ids=[nodes[i].id for i in component],
                        path_labels=[nodes[i].path for i in component],
                    ))
    return cycles
