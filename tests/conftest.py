"""Shared fixtures for replica tests.

Log files go to a temporary directory: REPLICA_LOG_DIR must be set before
any replica module is imported.
"""

import os
import tempfile

os.environ.setdefault("REPLICA_LOG_DIR", tempfile.mkdtemp(prefix="replica-logs-"))

import pytest  # noqa: E402

from factories import make_page, make_state_capture  # noqa: E402


@pytest.fixture
def page():
    """Landing page snapshot: header/nav, hero with CTA, grid, plain box."""
    return make_page()


@pytest.fixture
def state_capture():
    return make_state_capture()


@pytest.fixture
def components():
    return {
        "button": [
            {"selector": ".cta", "rect": {"x": 560, "y": 400, "width": 160, "height": 48},
             "text": "Get Started", "variant": "primary", "detectionMethod": "class"},
        ],
        "navItem": [
            {"selector": "#top > nav > a:nth-of-type(1)", "text": "Home"},
        ],
    }


@pytest.fixture
def structure():
    return {
        "componentBoundaries": {
            "components": [
                {"name": "Header", "selector": "#top", "rect": {"x": 0, "y": 0, "width": 1280, "height": 80}},
                {"name": "Hero", "selector": "section.hero",
                 "rect": {"x": 0, "y": 80, "width": 1280, "height": 600}},
            ],
        },
        "viewport": {"width": 1280, "height": 800},
    }


@pytest.fixture
def viewport_layouts():
    return {
        "desktop": {
            "viewport": {"width": 1280, "height": 800},
            "gridLayouts": [
                {"selector": "body > div.features", "rect": {"width": 1280},
                 "gridTemplateColumns": "400px 400px 400px", "gap": "40px"},
            ],
            "flexLayouts": [
                {"selector": "#top > nav", "flexDirection": "row", "flexWrap": "nowrap",
                 "justifyContent": "flex-end", "alignItems": "center", "gap": "24px"},
            ],
            "visibilityStates": [
                {"selector": "#top > nav", "isVisible": True, "display": "flex", "visibility": "visible",
                 "opacity": "1"},
            ],
            "layoutContainers": [
                {"selector": "#top > nav", "layout": {"display": "flex"}, "sizing": {}},
                {"selector": "body > section.hero", "rect": {"width": 1280},
                 "layout": {"display": "block"}, "sizing": {"padding": "80px 64px", "maxWidth": "none"}},
            ],
        },
        "mobile": {
            "viewport": {"width": 375, "height": 812},
            "gridLayouts": [
                {"selector": "body > div.features", "rect": {"width": 343},
                 "gridTemplateColumns": "343px", "gap": "40px"},
            ],
            "flexLayouts": [
                {"selector": "#top > nav", "flexDirection": "column", "flexWrap": "nowrap",
                 "justifyContent": "flex-end", "alignItems": "center", "gap": "24px"},
            ],
            "visibilityStates": [
                {"selector": "#top > nav", "isVisible": False, "display": "none", "visibility": "visible",
                 "opacity": "1"},
            ],
            "layoutContainers": [
                {"selector": "#top > nav", "layout": {"display": "block"}, "sizing": {}},
                {"selector": "body > section.hero", "rect": {"width": 375},
                 "layout": {"display": "block"}, "sizing": {"padding": "32px 16px", "maxWidth": "none"}},
            ],
        },
    }
