"""Common literal values used across pageflow.

These constants keep reserved data keys and discovery conventions centralized
so loaders, the build pipeline, layouts, and tests can import the same values
without drifting. Intended for internal use within the pageflow package.

Examples
--------
>>> from pageflow import _constants
>>> _constants.PAGES_KEY
'pages'
>>> "_drafts".startswith(_constants.IGNORE_PREFIXES)
True
"""

PAGES_KEY = "pages"
TOC_KEY = "toc"
LAYOUT_KEY = "layout"
TITLE_KEY = "title"
DESCRIPTION_KEY = "description"
KEYWORDS_KEY = "keywords"
INDEX_STEM = "index"
IGNORE_PREFIXES: tuple[str, ...] = ("_", ".")
FRONT_MATTER_FENCE = "---"
