"""
SVG Allow-list Policy
=====================
Tags, attributes and style values kept when an uploaded SVG is sanitized.

Bump SVG_POLICY_VERSION on every change so reviews can diff the data on
its own.

Output is SVG 2: the parser keys namespaced attributes by local name, so
``xlink:href`` is written back as ``href`` and ``xmlns:xlink`` is dropped.
SVG 1.1-only renderers that require the xlink spelling are not supported.
"""

import re

SVG_POLICY_VERSION = "2024.2"

# The HTML parser lowercases names; SVG_CASE_RESTORE maps them back
ALLOWED_TAGS = frozenset({
    "svg", "g", "path", "circle", "rect", "ellipse", "line", "polyline",
    "polygon", "text", "tspan", "defs", "clippath", "mask", "pattern",
    "lineargradient", "radialgradient", "stop", "use", "symbol", "title",
    "desc", "metadata",
})

# Elements removed together with their content
DISCARD_CONTENT_TAGS = ("script", "style", "foreignobject", "iframe")

_GLOBAL_ATTRIBUTES = [
    "id", "class", "style", "transform", "fill", "stroke", "stroke-width",
    "stroke-linecap", "stroke-linejoin", "opacity", "fill-opacity",
    "stroke-opacity", "x", "y", "x1", "y1", "x2", "y2", "cx", "cy",
    "r", "rx", "ry", "width", "height", "d", "points", "viewbox",
    "preserveaspectratio", "xmlns", "version",
]

_GRADIENT_ATTRIBUTES = ["gradientunits", "gradienttransform"]

ALLOWED_ATTRIBUTES = {
    "*": _GLOBAL_ATTRIBUTES,
    "use": ["href"],  # Also matches xlink:href, written back as href
    "lineargradient": _GRADIENT_ATTRIBUTES,
    "radialgradient": _GRADIENT_ATTRIBUTES,
    "stop": ["offset", "stop-color", "stop-opacity"],
    "pattern": ["patternunits", "patterncontentunits", "patterntransform"],
}

# No URI schemes: only same-document references ("#id") survive
ALLOWED_PROTOCOLS = frozenset()

_COLOR = (
    re.compile(r"^[a-z]+$", re.I),
    re.compile(r"^#[0-9a-f]+$", re.I),
    re.compile(r"^rgb\(\s*\d{1,3}\s*,\s*\d{1,3}\s*,\s*\d{1,3}\s*\)$"),
)
_NONE = re.compile(r"^none$")

ALLOWED_STYLES = {
    "color": _COLOR,
    "fill": _COLOR + (_NONE,),
    "stroke": _COLOR + (_NONE,),
    "stroke-width": (re.compile(r"^\d+(?:px|em|%)?$"),),
    "opacity": (re.compile(r"^[0-9.]+$"),),
    "font-size": (re.compile(r"^\d+(?:px|em|pt|%)?$"),),
    "font-family": (re.compile(r"^[\w\s,'-]+$"),),
    "text-anchor": (re.compile(r"^(start|middle|end)$"),),
}

SVG_CASE_RESTORE = {
    name.lower(): name
    for name in (
        # Tags
        "clipPath", "linearGradient", "radialGradient",
        # Attributes
        "viewBox", "preserveAspectRatio", "gradientUnits", "gradientTransform",
        "patternUnits", "patternContentUnits", "patternTransform",
    )
}

# Raw input patterns that mean something was stripped
DANGEROUS_CONTENT = re.compile(
    r"<\s*script|javascript\s*:|\bdata\s*:|\son\w+\s*=|<\s*foreignobject|<\s*iframe",
    re.I,
)
