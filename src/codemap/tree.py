"""File-tree listing for browsing a repository.

Independent of the dependency graph: it lists every file, including ones no
language spec handles, apart from VCS metadata and common build output.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

TREE_SKIP_NAMES = {"node_modules", ".next", "dist", "build"}
TREE_SKIP_PREFIXES = (".git",)  # .git, .github, .gitignore, ...


@dataclass
class FileTreeNode:
    """A file or folder. ``path`` is relative to the root ("" for the root itself)."""

    id: str
    name: str
    type: str  # "file" | "folder"
    path: str
    children: Optional[list["FileTreeNode"]] = None

    def as_dict(self) -> dict:
        d = {"id": self.id, "name": self.name, "type": self.type, "path": self.path}
        if self.children is not None:
            d["children"] = [c.as_dict() for c in self.children]
        return d


def _skip(name: str) -> bool:
    return name in TREE_SKIP_NAMES or name.startswith(TREE_SKIP_PREFIXES)


def build_file_tree(root: str | Path) -> Optional[FileTreeNode]:
    """Return the folder tree under *root*, or None if it is not a directory.

    Children are sorted folders first, then by name.
    """
    root_path = Path(root).resolve()
    if not root_path.is_dir():
        logger.warning("Cannot build file tree: %s is not a directory", root_path)
        return None

    top = FileTreeNode(id=str(root_path), name=root_path.name, type="folder", path="", children=[])
    stack: list[tuple[Path, FileTreeNode]] = [(root_path, top)]
    while stack:
        path, node = stack.pop()
        try:
            entries = [child for child in path.iterdir() if not _skip(child.name)]
        except OSError as e:
            logger.warning("Skipping unreadable directory %s: %s", path, e)
            continue

        for child in entries:
            is_folder = child.is_dir()
            if is_folder and child.is_symlink():
                continue
            child_node = FileTreeNode(
                id=str(child),
                name=child.name,
                type="folder" if is_folder else "file",
                path=f"{node.path}/{child.name}" if node.path else child.name,
                children=[] if is_folder else None,
            )
            node.children.append(child_node)
            if is_folder:
                stack.append((child, child_node))

        node.children.sort(key=lambda c: (c.type != "folder", c.name.lower(), c.name))
    return top
