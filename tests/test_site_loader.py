"""Pytest tests for SiteLoader and store building.

Tests cover:
- Happy path: successful site and collection loading
- Error handling: missing files, invalid config, import failures
- Collection filtering: only Collection instances returned
- Caching behavior: site caching on subsequent calls
- Store building from Site pages and from a front matter content directory
"""

import sys
import tempfile
import tomllib
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, Mock, patch

import pytest

from render_engine import Collection, Site
from render_engine_query.errors import QueryNotFoundError
from render_engine_query.site_loader import SiteLoader, load_items_from_directory, page_to_item


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def temp_project_dir():
    """Create a temporary project directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def mock_site():
    """Create a mock Site instance with route_list."""
    site = Mock(spec=Site)
    site.route_list = {}
    return site


@pytest.fixture
def valid_pyproject_content():
    """Return valid pyproject.toml TOML content."""
    return """[tool.render-engine]
name = "Test Site"

[tool.render-engine.cli]
module = "routes"
site = "app"

[tool.render-engine.collections.services]
title = "Our Services"
isHierarchical = true
redirectFrom = ["service"]
"""


@pytest.fixture
def valid_pyproject_path(temp_project_dir, valid_pyproject_content):
    """Create a valid pyproject.toml file in temp directory."""
    pyproject_path = temp_project_dir / "pyproject.toml"
    pyproject_path.write_text(valid_pyproject_content)
    return temp_project_dir


@pytest.fixture
def mock_module_with_site(mock_site):
    """Create a mock module with a valid Site object."""
    module = MagicMock()
    module.app = mock_site
    return module


def make_collection(*pages):
    """Create a mock Collection whose sorted_pages yields ``pages``."""
    collection = Mock(spec=Collection)
    collection.sorted_pages = list(pages)
    return collection


def write_markdown(path: Path, front_matter: str, body: str = "Body") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"---\n{front_matter}\n---\n{body}\n")


# ============================================================================
# Site loading
# ============================================================================


class TestSiteLoaderHappyPath:
    """Test successful site loading and collection access."""

    def test_site_loader_initialization_explicit_path(self, temp_project_dir):
        """Test SiteLoader initializes with explicit project root."""
        loader = SiteLoader(project_root=temp_project_dir)
        assert loader.project_root == temp_project_dir
        assert loader.pyproject_path == temp_project_dir / "pyproject.toml"
        assert loader._site is None
        assert loader._module is None

    def test_load_site_success(self, valid_pyproject_path, mock_module_with_site):
        """Test successful site loading from pyproject.toml."""
        loader = SiteLoader(project_root=valid_pyproject_path)

        with patch("importlib.import_module", return_value=mock_module_with_site) as mock_import:
            site = loader.load_site()
            assert site is mock_module_with_site.app
            mock_import.assert_called_once_with("routes")

    def test_cache_prevents_reimport(self, valid_pyproject_path, mock_module_with_site):
        """Test that cached site prevents re-importing module."""
        loader = SiteLoader(project_root=valid_pyproject_path)

        with patch("importlib.import_module", return_value=mock_module_with_site) as mock_import:
            loader.load_site()
            loader.load_site()
            assert mock_import.call_count == 1

    def test_sys_path_modification_adds_project_root(self, valid_pyproject_path, mock_module_with_site):
        """Test that project root is added to sys.path for imports."""
        loader = SiteLoader(project_root=valid_pyproject_path)

        with patch("importlib.import_module", return_value=mock_module_with_site):
            loader.load_site()
        assert str(valid_pyproject_path) in sys.path

    def test_get_collections_filters_non_collection_objects(
        self, valid_pyproject_path, mock_site, mock_module_with_site
    ):
        """Test that non-Collection objects in route_list are filtered out."""
        collection = Mock(spec=Collection)
        mock_site.route_list = {
            "services": collection,
            "static_files": "not a collection",
            "other": None,
        }
        loader = SiteLoader(project_root=valid_pyproject_path)

        with patch("importlib.import_module", return_value=mock_module_with_site):
            collections = loader.get_collections()
        assert collections == {"services": collection}


class TestConfigurationErrors:
    """Test error handling for missing files and configuration."""

    def test_pyproject_toml_not_found(self, temp_project_dir):
        """Test FileNotFoundError when pyproject.toml doesn't exist."""
        loader = SiteLoader(project_root=temp_project_dir)

        with pytest.raises(FileNotFoundError) as exc_info:
            loader.load_site()

        assert "pyproject.toml not found" in str(exc_info.value)
        assert str(temp_project_dir) in str(exc_info.value)

    def test_missing_tool_render_engine_section(self, temp_project_dir):
        """Test KeyError when [tool.render-engine] section is missing."""
        (temp_project_dir / "pyproject.toml").write_text('[tool.other]\nkey = "value"\n')
        loader = SiteLoader(project_root=temp_project_dir)

        with pytest.raises(KeyError) as exc_info:
            loader.build_store()
        assert "[tool.render-engine] section not found" in exc_info.value.args[0]

    @pytest.mark.parametrize(
        "cli_config",
        ['module = "routes"\n', 'site = "app"\n', 'module = ""\nsite = "app"\n'],
        ids=["missing_site", "missing_module", "empty_module"],
    )
    def test_incomplete_cli_config(self, temp_project_dir, cli_config):
        """Test KeyError when module or site is not configured."""
        (temp_project_dir / "pyproject.toml").write_text(f"[tool.render-engine.cli]\n{cli_config}")
        loader = SiteLoader(project_root=temp_project_dir)

        with pytest.raises(KeyError) as exc_info:
            loader.load_site()
        error_msg = exc_info.value.args[0]
        assert "both" in error_msg and "module" in error_msg and "site" in error_msg

    def test_module_import_error_with_original_error(self, valid_pyproject_path):
        """Test ImportError keeps the original error."""
        loader = SiteLoader(project_root=valid_pyproject_path)
        original = ImportError("No module named 'routes'")

        with patch("importlib.import_module", side_effect=original):
            with pytest.raises(ImportError) as exc_info:
                loader.load_site()

        assert "Failed to import module 'routes'" in str(exc_info.value)
        assert exc_info.value.__cause__ is original

    def test_attribute_error_missing_site_attribute(self, valid_pyproject_path):
        """Test AttributeError when the module has no site attribute."""
        module = Mock(spec=[])
        loader = SiteLoader(project_root=valid_pyproject_path)

        with patch("importlib.import_module", return_value=module):
            with pytest.raises(AttributeError) as exc_info:
                loader.load_site()
        assert "does not have a 'app' attribute" in str(exc_info.value)

    @pytest.mark.parametrize("bad_site", ["not a site", {"route_list": {}}, None])
    def test_non_site_object(self, valid_pyproject_path, bad_site):
        """Test TypeError when the loaded object is not a Site."""
        module = MagicMock()
        module.app = bad_site
        loader = SiteLoader(project_root=valid_pyproject_path)

        with patch("importlib.import_module", return_value=module):
            with pytest.raises(TypeError) as exc_info:
                loader.load_site()
        assert "is not a render_engine.Site instance" in str(exc_info.value)

    def test_malformed_toml_raises_error(self, temp_project_dir):
        """Test that malformed TOML raises an error."""
        (temp_project_dir / "pyproject.toml").write_text("[tool.render-engine\nbroken")
        loader = SiteLoader(project_root=temp_project_dir)

        with pytest.raises(tomllib.TOMLDecodeError):
            loader.load_site()


# ============================================================================
# Store building
# ============================================================================


class TestPageToItem:
    def test_keeps_front_matter_fields(self):
        page = SimpleNamespace(
            slug="web-design",
            title="Web Design",
            parent=["website-creation"],
            content="# Raw markdown",
            template="page.html",
            _private="hidden",
            render=lambda: None,
        )
        assert page_to_item(page) == {
            "slug": "web-design",
            "title": "Web Design",
            "parent": ["website-creation"],
        }


class TestBuildStoreFromSite:
    """Test items read from render-engine collections."""

    def test_build_store(self, valid_pyproject_path, mock_site, mock_module_with_site):
        mock_site.route_list = {
            "services": make_collection(
                SimpleNamespace(slug="website-creation", title="Website Creation"),
                SimpleNamespace(slug="web-design", title="Web Design", parent="website-creation"),
            ),
            "projects": make_collection(
                SimpleNamespace(slug="project-alpha", title="Project Alpha", services=["web-design"]),
            ),
            "index": "not a collection",
        }
        loader = SiteLoader(project_root=valid_pyproject_path)

        with patch("importlib.import_module", return_value=mock_module_with_site):
            store = loader.build_store()

        assert store.names() == ["services", "projects"]
        assert store.get_config("services").is_hierarchical is True
        assert store.get_config("services").title == "Our Services"
        assert store.get_item("services", "web-design")["parent"] == "website-creation"

        registry = loader.build_registry(store)
        related = registry.execute("RelatedProjects", slug="web-design", current_collection="services")
        assert [item["href"] for item in related] == ["/projects/project-alpha"]
        assert [item["slug"] for item in registry.execute("ChildrenServices", slug="website-creation")] == [
            "web-design"
        ]


class TestBuildStoreFromDirectory:
    """Test items read from Markdown front matter."""

    @pytest.fixture
    def content_project(self, temp_project_dir):
        (temp_project_dir / "pyproject.toml").write_text(
            """[tool.render-engine.content]
path = "content"

[tool.render-engine.collections.services]
isHierarchical = true
redirectFrom = ["service"]

[[tool.render-engine.queries]]
name = "NavMenu"
description = "Main navigation menu items"
items = [{ label = "Home", href = "/" }]
"""
        )
        content = temp_project_dir / "content"
        write_markdown(content / "services" / "website-creation.md", "title: Website Creation\nfeatured: true")
        write_markdown(
            content / "services" / "web-design.md",
            "title: Web Design\nparent:\n  - website-creation\nredirectFrom:\n  - design",
        )
        write_markdown(
            content / "projects" / "alpha.md",
            "slug: project-alpha\ntitle: Project Alpha\nservices:\n  - web-design",
        )
        (content / "projects" / "notes.txt").write_text("ignored")
        return temp_project_dir

    def test_load_items_from_directory(self, content_project):
        items = load_items_from_directory(content_project / "content")
        assert list(items) == ["projects", "services"]
        assert [item["slug"] for item in items["services"]] == ["web-design", "website-creation"]
        assert items["projects"][0]["slug"] == "project-alpha"
        assert items["projects"][0]["content"].strip() == "Body"

    def test_missing_directory(self, temp_project_dir):
        with pytest.raises(FileNotFoundError):
            load_items_from_directory(temp_project_dir / "content")

    def test_build_store_and_registry(self, content_project):
        loader = SiteLoader(project_root=content_project)

        with patch("importlib.import_module") as mock_import:
            store = loader.build_store()
            registry = loader.build_registry(store)
            mock_import.assert_not_called()

        assert store.names() == ["services", "projects"]
        assert registry.execute("NavMenu") == [{"label": "Home", "href": "/"}]
        assert [item["slug"] for item in registry.execute("FeaturedServices")] == ["website-creation"]
        assert [item["slug"] for item in registry.execute("ParentServices", slug="web-design")] == [
            "website-creation"
        ]
        with pytest.raises(QueryNotFoundError):
            registry.execute("ChildrenProjects")
