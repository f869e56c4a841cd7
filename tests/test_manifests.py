"""Tests for manifest parsers and runtime-version detection.

Covers: every ecosystem parser, range-operator stripping, fail-soft
behaviour on malformed manifests, parser lookup by name and glob, and
language-version detection from root manifests.
"""

import json
import textwrap

import pytest

from codemap.manifests import (
    _parse_dep_string,
    clean_version,
    detect_language_version,
    find_manifest_parser,
    parse_build_gradle,
    parse_cargo_toml,
    parse_cmakelists,
    parse_composer_json,
    parse_csproj,
    parse_gemfile,
    parse_go_mod,
    parse_manifest,
    parse_package_json,
    parse_package_swift,
    parse_pipfile,
    parse_pom_xml,
    parse_pubspec_yaml,
    parse_pyproject_toml,
    parse_requirements_txt,
    parse_setup_cfg,
    parse_setup_py,
)


# ── Helpers ──


class TestCleanVersion:
    @pytest.mark.parametrize(
        "spec, expected",
        [
            ("^18.2.0", "18.2.0"),
            ("~5.3.3", "5.3.3"),
            (">=4.2", "4.2"),
            ("v1.9.1", "1.9.1"),
            ("  ~> 7.1 ", "7.1"),
            ("14.1.0", "14.1.0"),
        ],
    )
    def test_strips_range_operators(self, spec, expected):
        assert clean_version(spec) == expected


class TestParseDepString:
    def test_with_version(self):
        assert _parse_dep_string("flask>=2.0") == ("flask", ">=2.0")

    def test_with_extras(self):
        assert _parse_dep_string("requests[security]") == ("requests", "")

    def test_with_marker(self):
        assert _parse_dep_string("numpy==1.24; python_version >= '3.8'") == ("numpy", "==1.24")


# ── JavaScript ──


class TestPackageJson:
    def test_caret_and_tilde_versions(self):
        versions = {}
        content = json.dumps({
            "dependencies": {"react": "^18.2.0", "next": "14.1.0"},
            "devDependencies": {"typescript": "~5.3.3"},
        })
        assert parse_package_json(content, versions) == ["Next.js", "React", "TypeScript"]
        assert versions == {"Next.js": "14.1.0", "React": "18.2.0", "TypeScript": "5.3.3"}

    def test_peer_dependencies(self):
        versions = {}
        content = json.dumps({"peerDependencies": {"vue": "^3.4.0"}})
        assert parse_package_json(content, versions) == ["Vue"]

    def test_unknown_packages_ignored(self):
        assert parse_package_json(json.dumps({"dependencies": {"left-pad": "1.0.0"}}), {}) == []

    def test_malformed_json(self, caplog):
        versions = {}
        assert parse_package_json("{not json", versions) == []
        assert versions == {}
        assert "Failed to parse package.json" in caplog.text

    def test_non_object_top_level(self):
        assert parse_package_json("[1, 2]", {}) == []

    def test_unexpected_section_shape(self):
        assert parse_package_json(json.dumps({"dependencies": ["react"]}), {}) == []


# ── Python ──


class TestPythonManifests:
    def test_requirements(self):
        versions = {}
        content = textwrap.dedent("""\
            # web
            -r base.txt
            Django>=4.2,<5.0
            flask==2.3.2  # pinned
            requests
        """)
        assert parse_requirements_txt(content, versions) == ["Django", "Flask"]
        assert versions == {"Django": "4.2", "Flask": "2.3.2"}

    def test_pyproject_pep621(self):
        versions = {}
        content = textwrap.dedent("""\
            [project]
            name = "svc"
            dependencies = ["fastapi>=0.110", "pydantic"]

            [project.optional-dependencies]
            test = ["pytest>=8.0"]
        """)
        assert parse_pyproject_toml(content, versions) == ["FastAPI", "Pydantic", "pytest"]
        assert versions == {"FastAPI": "0.110", "pytest": "8.0"}

    def test_pyproject_poetry(self):
        versions = {}
        content = textwrap.dedent("""\
            [tool.poetry.dependencies]
            python = "^3.11"
            django = "^5.0"
            celery = { version = "^5.3", extras = ["redis"] }
        """)
        assert parse_pyproject_toml(content, versions) == ["Django", "Celery"]
        assert versions == {"Django": "5.0", "Celery": "5.3"}

    def test_pyproject_malformed(self, caplog):
        assert parse_pyproject_toml("[project\nname = ", {}) == []
        assert "Failed to parse pyproject.toml" in caplog.text

    def test_pipfile(self):
        versions = {}
        content = textwrap.dedent("""\
            [packages]
            flask = "*"
            sqlalchemy = ">=2.0"
        """)
        assert parse_pipfile(content, versions) == ["Flask", "SQLAlchemy"]
        assert versions == {"SQLAlchemy": "2.0"}

    def test_setup_py_is_not_executed(self):
        versions = {}
        content = textwrap.dedent("""\
            from setuptools import setup
            import sys
            sys.exit("never run")
            setup(name="x", install_requires=["flask>=2.0", "click"])
        """)
        assert parse_setup_py(content, versions) == ["Flask"]
        assert versions == {"Flask": "2.0"}

    def test_setup_py_syntax_error(self):
        assert parse_setup_py("setup(install_requires=[", {}) == []

    def test_setup_cfg(self):
        versions = {}
        content = textwrap.dedent("""\
            [metadata]
            name = x

            [options]
            install_requires =
                django>=4.0
                celery
        """)
        assert parse_setup_cfg(content, versions) == ["Django", "Celery"]
        assert versions == {"Django": "4.0"}


# ── Other Ecosystems ──


class TestOtherManifests:
    def test_go_mod(self):
        versions = {}
        content = textwrap.dedent("""\
            module github.com/acme/shop

            go 1.22

            require (
            \tgithub.com/gin-gonic/gin v1.9.1
            \tgithub.com/labstack/echo/v4 v4.11.0 // indirect
            )

            require gorm.io/gorm v1.25.5
        """)
        assert parse_go_mod(content, versions) == ["Gin", "Echo", "GORM"]
        assert versions == {"Gin": "1.9.1", "Echo": "4.11.0", "GORM": "1.25.5"}

    def test_cargo_toml(self):
        versions = {}
        content = textwrap.dedent("""\
            [package]
            name = "api"
            rust-version = "1.74"

            [dependencies]
            axum = "0.7"
            tokio = { version = "1.35", features = ["full"] }
            serde = { workspace = true }
        """)
        assert parse_cargo_toml(content, versions) == ["Axum", "Tokio", "Serde"]
        assert versions == {"Axum": "0.7", "Tokio": "1.35"}

    def test_pom_xml(self):
        versions = {}
        content = textwrap.dedent("""\
            <project>
              <properties><java.version>17</java.version></properties>
              <parent>
                <groupId>org.springframework.boot</groupId>
                <artifactId>spring-boot-starter-parent</artifactId>
                <version>3.2.1</version>
              </parent>
            </project>
        """)
        assert parse_pom_xml(content, versions) == ["Spring Boot"]
        assert versions == {"Spring Boot": "3.2.1"}

    def test_build_gradle(self):
        versions = {}
        content = "dependencies {\n    implementation 'org.springframework.boot:spring-boot-starter-web:3.1.0'\n}\n"
        assert parse_build_gradle(content, versions) == ["Spring Boot"]
        assert versions == {"Spring Boot": "3.1.0"}

    def test_gemfile(self):
        versions = {}
        content = textwrap.dedent("""\
            source "https://rubygems.org"
            ruby "3.2.2"
            gem "rails", "~> 7.1.0"
            gem 'sidekiq'
        """)
        assert parse_gemfile(content, versions) == ["Ruby on Rails", "Sidekiq"]
        assert versions == {"Ruby on Rails": "7.1.0"}

    def test_composer_json(self):
        versions = {}
        content = json.dumps({"require": {"php": "^8.1", "laravel/framework": "^10.10"}})
        assert parse_composer_json(content, versions) == ["Laravel"]
        assert versions == {"Laravel": "10.10"}

    def test_pubspec_yaml(self):
        versions = {}
        content = textwrap.dedent("""\
            name: app
            environment:
              sdk: ">=3.0.0 <4.0.0"

            dependencies:
              flutter:
                sdk: flutter
              provider: ^6.1.1

            dev_dependencies:
              flutter_test:
                sdk: flutter
        """)
        assert parse_pubspec_yaml(content, versions) == ["Flutter", "Provider"]
        assert versions == {"Provider": "6.1.1"}

    def test_csproj(self):
        versions = {}
        content = (
            '<Project Sdk="Microsoft.NET.Sdk.Web">\n'
            "  <ItemGroup>\n"
            '    <PackageReference Include="Microsoft.EntityFrameworkCore" Version="8.0.0" />\n'
            "  </ItemGroup>\n"
            "</Project>\n"
        )
        assert parse_csproj(content, versions) == ["ASP.NET Core", "Entity Framework Core"]
        assert versions == {"Entity Framework Core": "8.0.0"}

    def test_cmakelists(self):
        versions = {}
        content = "find_package(Qt6 6.5 REQUIRED COMPONENTS Widgets)\n"
        assert parse_cmakelists(content, versions) == ["Qt"]
        assert versions == {"Qt": "6.5"}

    def test_package_swift(self):
        versions = {}
        content = '.package(url: "https://github.com/vapor/vapor.git", from: "4.89.0"),\n'
        assert parse_package_swift(content, versions) == ["Vapor"]
        assert versions == {"Vapor": "4.89.0"}

    def test_existing_version_is_kept(self):
        versions = {"React": "17.0.0"}
        parse_package_json(json.dumps({"dependencies": {"react": "^18.2.0"}}), versions)
        assert versions["React"] == "17.0.0"


# ── Lookup and Dispatch ──


class TestFindManifestParser:
    def test_exact_names(self):
        assert find_manifest_parser("package.json") is parse_package_json
        assert find_manifest_parser("go.mod") is parse_go_mod

    def test_glob_names(self):
        assert find_manifest_parser("requirements-dev.txt") is parse_requirements_txt
        assert find_manifest_parser("Shop.Api.csproj") is parse_csproj

    def test_unknown(self):
        assert find_manifest_parser("README.md") is None

    def test_parse_manifest_unknown_file(self):
        assert parse_manifest("README.md", "# hi", {}) == []


class TestDetectLanguageVersion:
    def test_node_engines(self):
        content = json.dumps({"engines": {"node": ">=18.0.0"}})
        assert detect_language_version("package.json", content) == ("node", "18.0.0")

    def test_requires_python(self):
        content = '[project]\nrequires-python = ">=3.10"\n'
        assert detect_language_version("pyproject.toml", content) == ("python", "3.10")

    def test_poetry_python(self):
        content = '[tool.poetry.dependencies]\npython = "^3.11"\n'
        assert detect_language_version("pyproject.toml", content) == ("python", "3.11")

    def test_go_directive(self):
        assert detect_language_version("go.mod", "module x\n\ngo 1.22\n") == ("go", "1.22")

    def test_rust_version(self):
        content = '[package]\nname = "x"\nrust-version = "1.74"\n'
        assert detect_language_version("Cargo.toml", content) == ("rust", "1.74")

    def test_java_version(self):
        content = "<properties><maven.compiler.source>21</maven.compiler.source></properties>"
        assert detect_language_version("pom.xml", content) == ("java", "21")

    def test_ruby_version(self):
        assert detect_language_version("Gemfile", 'ruby "3.2.2"\n') == ("ruby", "3.2.2")

    def test_php_version(self):
        content = json.dumps({"require": {"php": "^8.1|^8.2"}})
        assert detect_language_version("composer.json", content) == ("php", "8.1")

    def test_dart_sdk(self):
        content = 'name: app\nenvironment:\n  sdk: ">=3.0.0 <4.0.0"\n'
        assert detect_language_version("pubspec.yaml", content) == ("dart", "3.0.0")

    def test_missing_or_malformed(self):
        assert detect_language_version("package.json", json.dumps({"name": "x"})) is None
        assert detect_language_version("package.json", "{oops") is None
        assert detect_language_version("README.md", "anything") is None
