"""Shared fixtures: a small agency site with five collections.

services (hierarchical)
    website-creation      featured
    digital-marketing     references project-alpha
    web-design            parents: website-creation, digital-marketing
    seo-optimization      parent: digital-marketing, alias "seo", featured
    hosting               no page
projects
    project-alpha         services: web-design, seo-optimization; team: alice
    project-beta          services: web-design, ghost-service (dangling)
    project-gamma         services: hosting; team: bob
testimonials
    happy-client          projects: project-alpha
    returning-client      services: seo-optimization
team (no pages)
    alice                 services: website-creation
    bob
contact (single-segment URLs)
    phone                 tel: link
    about-us
"""

import pytest

from render_engine_query.store import CollectionStore


def make_collections():
    return {
        "services": {
            "metadata": {
                "title": "Our Services",
                "isHierarchical": True,
                "redirectFrom": ["service"],
                "addToQuery": [
                    {"name": "NavMenu", "addItemsToQuery": True, "setChildrenUnderParents": True},
                ],
            },
            "items": [
                {"slug": "website-creation", "title": "Website Creation", "featured": True},
                {"slug": "digital-marketing", "title": "Digital Marketing", "projects": ["project-alpha"]},
                {
                    "slug": "web-design",
                    "title": "Web Design",
                    "parent": ["website-creation", "digital-marketing"],
                },
                {
                    "slug": "seo-optimization",
                    "title": "SEO Optimization",
                    "parent": "digital-marketing",
                    "redirectFrom": ["seo"],
                    "featured": True,
                },
                {"slug": "hosting", "title": "Hosting", "hasPage": False},
            ],
        },
        "projects": {
            "metadata": {
                "redirectFrom": ["portfolio"],
                "addToQuery": [{"name": "NavMenu"}],
            },
            "items": [
                {
                    "slug": "project-alpha",
                    "title": "Project Alpha",
                    "services": ["web-design", "seo-optimization"],
                    "team": ["alice"],
                },
                {"slug": "project-beta", "title": "Project Beta", "services": ["web-design", "ghost-service"]},
                {"slug": "project-gamma", "title": "Project Gamma", "services": ["hosting"], "team": ["bob"]},
            ],
        },
        "testimonials": {
            "metadata": {},
            "items": [
                {"slug": "happy-client", "title": "Happy Client", "projects": ["project-alpha"]},
                {"slug": "returning-client", "title": "Returning Client", "services": ["seo-optimization"]},
            ],
        },
        "team": {
            "metadata": {"hasPage": False, "itemsHasPage": False},
            "items": [
                {"slug": "alice", "title": "Alice", "services": ["website-creation"]},
                {"slug": "bob", "title": "Bob"},
            ],
        },
        "contact": {
            "metadata": {"hasPage": False, "collectionSlugInItem": False},
            "items": [
                {"slug": "phone", "title": "Call us", "link": "tel:+15550100"},
                {
                    "slug": "about-us",
                    "title": "About us",
                    "menuLabel": "About",
                    "addToQuery": [{"name": "FooterMenu", "queryItemText": "menuLabel"}],
                },
            ],
        },
    }


def slugs(items):
    return [item["slug"] for item in items]


@pytest.fixture
def collections():
    return make_collections()


@pytest.fixture
def store(collections):
    return CollectionStore(collections)
