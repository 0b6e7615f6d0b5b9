"""Builds the collection store from a render-engine project.

Configuration lives in the project's pyproject.toml under [tool.render-engine]:

    [tool.render-engine.cli]
    module = "routes"
    site = "app"

    [tool.render-engine.content]
    path = "content"

    [tool.render-engine.collections.services]
    isHierarchical = true
    redirectFrom = ["service"]

Items come either from a directory of Markdown files with YAML front matter
(when [tool.render-engine.content] sets a path) or from the pages of the
render-engine Site's collections.
"""

import importlib
import logging
import sys
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional

import frontmatter
from render_engine import Collection, Site

from .collections_config import CollectionConfig, parse_collection_configs
from .queries import QueryRegistry, build_registry
from .store import SLUG, CollectionStore

logger = logging.getLogger(__name__)

# Page attributes that belong to render-engine rather than to the content
PAGE_INTERNAL_FIELDS = {
    "content",
    "Parser",
    "parser_extras",
    "template",
    "template_vars",
    "routes",
    "extension",
}

EXAMPLE_CLI_CONFIG = (
    "[tool.render-engine.cli]\n"
    'module = "routes"\n'
    'site = "app"'
)


def page_to_item(page: Any) -> Dict[str, Any]:
    """Convert a render-engine Page into an item dictionary.

    Keeps the page's public, non-callable attributes (its front matter).
    """
    item = {
        key: value
        for key, value in vars(page).items()
        if not key.startswith("_") and key not in PAGE_INTERNAL_FIELDS and not callable(value)
    }
    slug = getattr(page, "slug", None)
    if slug:
        item[SLUG] = slug
    return item


def load_items_from_directory(content_dir: Path) -> Dict[str, List[Dict[str, Any]]]:
    """Read ``<content_dir>/<collection>/*.md`` files into items.

    Each file's front matter becomes an item; the file stem is used as the
    slug when the front matter has none.

    Args:
        content_dir: Directory holding one subdirectory per collection

    Returns:
        Dictionary mapping collection names to item lists, in name order

    Raises:
        FileNotFoundError: If content_dir doesn't exist
    """
    if not content_dir.is_dir():
        raise FileNotFoundError(f"Content directory not found at {content_dir}.")

    collections = {}
    for collection_dir in sorted(path for path in content_dir.iterdir() if path.is_dir()):
        items = []
        for path in sorted(collection_dir.glob("*.md")):
            post = frontmatter.load(path)
            item = dict(post.metadata)
            item.setdefault(SLUG, path.stem)
            item["content"] = post.content
            items.append(item)
        collections[collection_dir.name] = items
        logger.debug("Loaded %d items from %s", len(items), collection_dir)

    return collections


class SiteLoader:
    """Loads [tool.render-engine] configuration and builds the store.

    The render-engine Site is only imported when items are read from it.
    """

    def __init__(self, project_root: Optional[Path] = None):
        """Initialize the loader.

        Args:
            project_root: Path to the render-engine project root.
                         Defaults to current working directory.
        """
        self.project_root = project_root or Path.cwd()
        self.pyproject_path = self.project_root / "pyproject.toml"
        self._config: Optional[Dict[str, Any]] = None
        self._site: Optional[Site] = None
        self._module: Optional[Any] = None

    @property
    def config(self) -> Dict[str, Any]:
        """Load and cache the [tool.render-engine] configuration."""
        if self._config is None:
            self._config = self._load_config()
        return self._config

    def _load_config(self) -> Dict[str, Any]:
        """Read pyproject.toml and extract the [tool.render-engine] section.

        Raises:
            FileNotFoundError: If pyproject.toml doesn't exist
            KeyError: If [tool.render-engine] section is missing
        """
        if not self.pyproject_path.exists():
            raise FileNotFoundError(
                f"pyproject.toml not found at {self.pyproject_path}. "
                "Make sure you're running from a render-engine project directory."
            )

        with open(self.pyproject_path, "rb") as f:
            pyproject = tomllib.load(f)

        if "tool" not in pyproject or "render-engine" not in pyproject["tool"]:
            raise KeyError(
                "[tool.render-engine] section not found in pyproject.toml. "
                f"Add configuration like:\n{EXAMPLE_CLI_CONFIG}"
            )

        return pyproject["tool"]["render-engine"]

    def load_site(self) -> Site:
        """Load the render-engine Site named in [tool.render-engine.cli].

        Returns:
            The instantiated Site object

        Raises:
            KeyError: If module or site is not configured
            ImportError: If module cannot be imported
            AttributeError: If site object doesn't exist
            TypeError: If loaded object is not a Site instance
        """
        if self._site is not None:
            return self._site

        cli_config = self.config.get("cli", {})
        module_name = cli_config.get("module")
        site_name = cli_config.get("site")

        if not module_name or not site_name:
            raise KeyError(
                "[tool.render-engine.cli] must specify both 'module' and 'site'.\n"
                f"Example:\n{EXAMPLE_CLI_CONFIG}"
            )

        # Add project root to sys.path for imports
        project_root_str = str(self.project_root)
        if project_root_str not in sys.path:
            sys.path.insert(0, project_root_str)

        try:
            self._module = importlib.import_module(module_name)
        except ImportError as e:
            raise ImportError(
                f"Failed to import module '{module_name}'. "
                f"Make sure the module exists and is importable from {self.project_root}. "
                f"Original error: {e}"
            ) from e

        if not hasattr(self._module, site_name):
            raise AttributeError(
                f"Module '{module_name}' does not have a '{site_name}' attribute. "
                f"Check your [tool.render-engine.cli] configuration."
            )

        site = getattr(self._module, site_name)
        if not isinstance(site, Site):
            raise TypeError(
                f"{module_name}.{site_name} is not a render_engine.Site instance. "
                f"Got {type(site)} instead."
            )

        self._site = site
        return self._site

    def get_collections(self) -> Dict[str, Collection]:
        """Get all Collections from the Site.

        Returns:
            Dictionary mapping collection slugs to Collection instances
        """
        site = self.load_site()
        return {
            slug: obj for slug, obj in site.route_list.items()
            if isinstance(obj, Collection)
        }

    def get_collection_configs(self) -> Dict[str, CollectionConfig]:
        """Parse [tool.render-engine.collections.<name>] tables."""
        return parse_collection_configs(self.config.get("collections", {}))

    def get_static_queries(self) -> List[Dict[str, Any]]:
        """Get the [[tool.render-engine.queries]] static query tables."""
        return list(self.config.get("queries", []))

    def load_items_from_site(self) -> Dict[str, List[Dict[str, Any]]]:
        """Read items from the pages of every Site collection."""
        return {
            slug: [page_to_item(page) for page in collection.sorted_pages]
            for slug, collection in self.get_collections().items()
        }

    def build_store(self) -> CollectionStore:
        """Build the collection store.

        Uses the [tool.render-engine.content] directory when one is
        configured, otherwise the render-engine Site.
        """
        content_path = self.config.get("content", {}).get("path")
        if content_path:
            items = load_items_from_directory(self.project_root / content_path)
        else:
            items = self.load_items_from_site()
        return CollectionStore.from_configs(self.get_collection_configs(), items)

    def build_registry(self, store: Optional[CollectionStore] = None) -> QueryRegistry:
        """Build the query registry, including configured static queries."""
        return build_registry(store or self.build_store(), self.get_static_queries())
