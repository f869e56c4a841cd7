"""Tests for the Language Parser Registry.

Covers: extension lookup, last-registration-wins, aggregated skip dirs,
entry points and manifests, spec validation, and grouped-block cleaning.
"""

import re

import pytest

from codemap.languages import (
    VCS_DIRS,
    LanguageRegistry,
    LanguageSpec,
    clean_block_entry,
    default_registry,
    default_specs,
)


def _spec(name, extensions, **kwargs):
    return LanguageSpec(
        name=name,
        extensions=extensions,
        import_patterns=(re.compile(r'use "(?P<path>[^"]+)"'),),
        extract_path=lambda m: m.group("path"),
        extract_specifiers=lambda m: [],
        **kwargs,
    )


# ── Registry ──


class TestLanguageRegistry:
    def test_lookup_is_case_insensitive(self):
        registry = default_registry()
        assert registry.for_extension(".TS").name == "typescript"
        assert registry.for_extension(".py").name == "python"

    def test_unknown_extension(self):
        assert default_registry().for_extension(".md") is None

    def test_last_registration_wins(self):
        registry = default_registry()
        registry.register(_spec("custom-ts", (".ts",)))
        assert registry.for_extension(".ts").name == "custom-ts"
        # The stock spec still owns its other extensions
        assert registry.for_extension(".tsx").name == "typescript"

    def test_specs_drops_fully_shadowed_entries(self):
        registry = LanguageRegistry([_spec("a", (".a",)), _spec("b", (".a",))])
        assert [s.name for s in registry.specs()] == ["b"]

    def test_skip_dirs_include_vcs_and_ecosystems(self):
        dirs = default_registry().skip_dirs()
        for name in VCS_DIRS:
            assert name in dirs
        assert "node_modules" in dirs
        assert "__pycache__" in dirs
        assert "target" in dirs

    @pytest.mark.parametrize("name", ["packages", "apps", "lib", "src"])
    def test_source_roots_not_skipped(self, name):
        assert name not in default_registry().skip_dirs()

    def test_skip_dirs_without_specs(self):
        assert LanguageRegistry().skip_dirs() == set(VCS_DIRS)

    def test_entry_points_and_manifests(self):
        registry = default_registry()
        assert {"main.go", "page.tsx", "manage.py"} <= registry.entry_point_names()
        assert {"package.json", "go.mod", "*.csproj", "requirements*.txt"} <= registry.manifest_names()

    def test_supported_extensions(self):
        exts = default_registry().supported_extensions()
        assert {".js", ".tsx", ".py", ".go", ".rs", ".java", ".cpp", ".dart"} <= exts
        assert ".md" not in exts

    def test_every_stock_language_present(self):
        names = {s.name for s in default_specs()}
        assert names == {
            "javascript", "typescript", "vue", "svelte", "python", "go", "rust",
            "java", "kotlin", "scala", "c", "csharp", "ruby", "php", "swift", "dart",
        }


class TestLanguageSpec:
    def test_rejects_unknown_resolver(self):
        with pytest.raises(ValueError, match="Unknown resolver"):
            _spec("bad", (".x",), resolver="magic")

    def test_is_frozen(self):
        spec = _spec("x", (".x",))
        with pytest.raises(AttributeError):
            spec.name = "y"


# ── Block Cleaning ──


class TestCleanBlockEntry:
    def test_quoted_entry(self):
        assert clean_block_entry('    "fmt"') == "fmt"

    def test_go_alias(self):
        assert clean_block_entry('f "github.com/acme/format"') == "github.com/acme/format"

    def test_trailing_comment(self):
        assert clean_block_entry('"os" // stdlib') == "os"

    def test_comment_only_line(self):
        assert clean_block_entry("  // nothing here") is None

    def test_blank_line(self):
        assert clean_block_entry("   ") is None

    def test_python_alias(self):
        assert clean_block_entry("numpy as np") == "numpy"

    def test_punctuation(self):
        assert clean_block_entry("models,") == "models"
