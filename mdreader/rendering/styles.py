"""Self-contained page stylesheet.

Everything is inlined into the page so rendered files work offline and can be
printed to PDF without network access.
"""

from functools import lru_cache

from pygments.formatters import HtmlFormatter

LIGHT_CODE_STYLE = "friendly"
DARK_CODE_STYLE = "monokai"

BASE_CSS = """
*, *::before, *::after { box-sizing: border-box; margin: 0; padding: 0; }

:root {
  --bg: #ffffff;
  --fg: #1f2328;
  --fg-muted: #656d76;
  --border: #d8dee4;
  --code-bg: #f6f8fa;
  --quote-bar: #5b5bd6;
  --quote-bg: #f4f4fd;
  --link: #3e63dd;
  --link-hover: #2b4bb5;
  --table-head: #f6f8fa;
  --table-stripe: #fafbfc;
}

@media (prefers-color-scheme: dark) {
  :root {
    --bg: #17181b;
    --fg: #e6e7ea;
    --fg-muted: #9ba1a9;
    --border: #33363c;
    --code-bg: #22252a;
    --quote-bar: #8b8cf0;
    --quote-bg: #1d1e2a;
    --link: #8da4ef;
    --link-hover: #b4c3f5;
    --table-head: #22252a;
    --table-stripe: #1c1e22;
  }
}

html { font-size: 17px; }

body {
  background: var(--bg);
  color: var(--fg);
  font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Inter, "Helvetica Neue", Arial, sans-serif;
  line-height: 1.7;
  padding: 2.5rem 1.25rem 6rem;
  -webkit-font-smoothing: antialiased;
}

article.prose { max-width: 720px; margin: 0 auto; }

h1, h2, h3, h4, h5, h6 { line-height: 1.3; font-weight: 700; margin: 2rem 0 0.75rem; }
h1 { font-size: 2.1rem; margin-top: 0; padding-bottom: 0.4rem; border-bottom: 2px solid var(--border); }
h2 { font-size: 1.5rem; padding-bottom: 0.25rem; border-bottom: 1px solid var(--border); }
h3 { font-size: 1.2rem; }
h4, h5, h6 { font-size: 1rem; color: var(--fg-muted); }

p, ul, ol, dl, table, pre, blockquote { margin-bottom: 1.2rem; }

a { color: var(--link); text-underline-offset: 3px; }
a:hover { color: var(--link-hover); }

code, pre {
  font-family: "JetBrains Mono", "Fira Code", "Cascadia Code", Menlo, Consolas, monospace;
}
:not(pre) > code {
  background: var(--code-bg);
  padding: 0.15em 0.4em;
  border-radius: 4px;
  font-size: 0.88em;
}
pre {
  background: var(--code-bg);
  border: 1px solid var(--border);
  border-radius: 8px;
  padding: 1rem 1.2rem;
  overflow-x: auto;
  font-size: 0.86rem;
  line-height: 1.55;
}
pre code { background: none; padding: 0; }

blockquote {
  border-left: 4px solid var(--quote-bar);
  background: var(--quote-bg);
  padding: 0.75rem 1.2rem;
  border-radius: 0 6px 6px 0;
  color: var(--fg-muted);
}
blockquote > :last-child { margin-bottom: 0; }

ul, ol { padding-left: 1.75rem; }
li { margin-bottom: 0.3rem; }
li > ul, li > ol { margin: 0.3rem 0 0; }
li.task-list-item { list-style: none; }
li.task-list-item input { margin: 0 0.5rem 0 -1.4rem; vertical-align: middle; }

table { width: 100%; border-collapse: collapse; font-size: 0.92rem; border: 1px solid var(--border); }
thead { background: var(--table-head); }
th, td { text-align: left; padding: 0.55rem 0.85rem; border-bottom: 1px solid var(--border); }
th { font-weight: 600; border-bottom-width: 2px; }
tbody tr:nth-child(even) td { background: var(--table-stripe); }

hr { border: none; border-top: 1px solid var(--border); margin: 2.5rem 0; }
img { max-width: 100%; border-radius: 6px; }

.footnotes { font-size: 0.88rem; color: var(--fg-muted); }
.footnotes-sep { margin: 2rem 0 1rem; }

@media print {
  html { font-size: 12pt; }
  body { padding: 0; background: #ffffff; color: #000000; }
  article.prose { max-width: none; }
  a { color: inherit; }
  pre, blockquote, table, img { page-break-inside: avoid; }
  h1, h2, h3 { page-break-after: avoid; }
}
"""


@lru_cache(maxsize=1)
def code_highlight_css() -> str:
    """Pygments rules for ``.highlight`` blocks, light by default and dark on request."""
    light = HtmlFormatter(style=LIGHT_CODE_STYLE).get_style_defs(".highlight")
    dark = HtmlFormatter(style=DARK_CODE_STYLE).get_style_defs(".highlight")
    return (
        f"{light}\n"
        ".highlight { background: var(--code-bg); }\n"
        f"@media (prefers-color-scheme: dark) {{\n{dark}\n"
        ".highlight { background: var(--code-bg); }\n}\n"
    )


@lru_cache(maxsize=1)
def page_css() -> str:
    """Complete stylesheet embedded in every page."""
    return BASE_CSS + "\n" + code_highlight_css()
