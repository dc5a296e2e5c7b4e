"""All syntax tokens, patterns and configuration constants."""

import re

DEFAULT_AUTHOR = "Warwick Allen"         # author when the header omits one and ${author} is unset
POEMS_DIR = "poems"                      # .poem / .yaml sources
PUBLIC_DIR = "public"                    # rendered HTML output
SHARED_POEM_FILE = ".shared.poem"        # prepended to every .poem in the same directory
SKIP_YAML_FILES = ("_shared.yaml", "_example.yaml", "shared.yaml")
INDEX_PAGE = "index.html"
VERSION = "0.1.0"

# Structural markers
SECTION_END = "===="
DIVIDER = "----"
LITERAL_OPEN = "<<<"
LITERAL_CLOSE = ">>>"
COMMENT_OPEN = "<<#"
COMMENT_CLOSE = "#>>"
RESERVED_LABELS = ("Synopsis", "Full")
SYNOPSIS_LABEL = "{Synopsis}"
FULL_LABEL = "{Full}"
REF_KEY = "$ref"

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Variables
SINGLE_VAR_RE = re.compile(r"^=\{([^}]+)\}=(.*)$")
MULTI_VAR_OPEN_RE = re.compile(r"^=\{([^}]+)\}<<=.*$")
MULTI_VAR_CLOSE_RE = re.compile(r"^=>>.*$")
VAR_REF_RE = re.compile(r"\$\{([^}]+)\}")
STANDALONE_VAR_RE = re.compile(r"^\$\{([^}]+)\}$")
AUTHOR_VAR = "author"

# Audio section: literal flag tokens and "Prefix: value" references
AUDIO_FLAG_PLATFORMS = {"Audiomack": "audiomack"}
AUDIO_REFERENCE_PLATFORMS = {"Suno": "suno"}
AUDIO_REFERENCE_URLS = {"suno": "https://suno.com/"}

# Analysis headings: "#" -> h3, "##" -> h4, "###" -> h5
HEADING_BASE_LEVEL = 3

# Inline markup
LINK_PREFIX = "https://"
ESCAPABLE_CHARS = "_*~[`\"&'-<>=$\\"
SPAN_CLASS_RE = re.compile(r"^\w(?:[\w.-]*\w)?$")
EM_DASH = "&#8212;"
EN_DASH = "&#8211;"
LEFT_SINGLE_QUOTE = "&#8216;"
RIGHT_SINGLE_QUOTE = "&#8217;"
LEFT_DOUBLE_QUOTE = "&#8220;"
RIGHT_DOUBLE_QUOTE = "&#8221;"
AMPERSAND = "&#38;"
APOSTROPHE = "&#39;"
NBSP = "&nbsp;"
