"""Poring markdown to preview HTML (markdown-it + dialect pass + bridge script)."""

from __future__ import annotations

import html
import json
from datetime import datetime
from pathlib import Path

from markdown_it import MarkdownIt
from mdit_py_plugins.dollarmath import dollarmath_plugin
from mdit_py_plugins.footnote import footnote_plugin

from .config import PoringConfig
from .dialect import preprocess
from .images import DirectoryImageStore, ImageResolver, parse_image_alt
from .source_tags import SOURCE_LINE_ATTR, SYNC_CLASS, source_tag_plugin

# Console messages starting with this prefix carry JSON from the page to Qt.
BRIDGE_PREFIX = "__poringmd__:"


class PoringRenderer:
    """Converts Poring notes to preview HTML with source-line sync targets."""

    def __init__(self, config: PoringConfig | None = None, images: ImageResolver | None = None) -> None:
        self.config = config or PoringConfig()
        if images is None:
            store = DirectoryImageStore(self.config.image_dir) if self.config.image_dir is not None else None
            images = ImageResolver(self.config.assets, store)
        self.images = images
        self._mathjax_local_script = self._resolve_local_mathjax_script()
        self._md = MarkdownIt(
            "commonmark",
            {"html": True, "typographer": True, "breaks": True},
        ).enable("table").enable("strikethrough")
        # Math is masked during the dialect pass and restored before parsing,
        # so dollarmath sees the author's TeX untouched.
        self._md.use(dollarmath_plugin)
        self._md.use(footnote_plugin)
        self._md.use(source_tag_plugin)

        renderer = self._md.renderer

        def custom_math_inline(tokens, idx, options, env):
            # Keep TeX content raw for MathJax, only HTML-escape unsafe chars.
            return f"${html.escape(tokens[idx].content)}$"

        def custom_math_inline_double(tokens, idx, options, env):
            return f"$${html.escape(tokens[idx].content)}$$"

        def custom_math_block(tokens, idx, options, env):
            token = tokens[idx]
            line = token.meta.get("source_line")
            line_attrs = f' {SOURCE_LINE_ATTR}="{line}"' if line is not None else ""
            math_body = (token.content or "").strip("\n")
            return f'<div class="math-block {SYNC_CLASS}"{line_attrs}>$$\n{html.escape(math_body)}\n$$</div>\n'

        def custom_image(tokens, idx, options, env):
            token = tokens[idx]
            alt_text = renderer.renderInlineAsText(token.children, options, env) if token.children else ""
            image_spec = parse_image_alt(alt_text, self.config.default_image_width)
            src = html.escape(self.images.resolve(str(token.attrGet("src") or "")))
            alt = html.escape(image_spec.alt)
            if image_spec.caption is None:
                return (
                    f'<img src="{src}" alt="{alt}" class="resized-image" '
                    f'style="width: {image_spec.width}px; display: block; margin: 0 auto"/>'
                )
            return (
                f'<figure style="display: block; margin: 1em auto; text-align: center; width: {image_spec.width}px">'
                f'<img src="{src}" alt="{alt}" class="resized-image" '
                'style="width: 100%; display: block; margin: 0 auto"/>'
                f'<figcaption class="image-caption">{html.escape(image_spec.caption)}</figcaption>'
                "</figure>"
            )

        renderer.rules["math_inline"] = custom_math_inline
        renderer.rules["math_inline_double"] = custom_math_inline_double
        renderer.rules["math_block"] = custom_math_block
        renderer.rules["math_block_label"] = custom_math_block
        renderer.rules["image"] = custom_image

    def _resolve_local_mathjax_script(self) -> Path | None:
        """Locate a local MathJax bundle before falling back to the CDN."""
        candidates: list[Path] = []
        if self.config.mathjax_script is not None:
            candidates.append(self.config.mathjax_script)
        app_dir = Path(__file__).resolve().parent
        candidates.extend(
            [
                app_dir / "vendor" / "mathjax" / "es5" / "tex-svg.js",
                Path("/usr/share/javascript/mathjax/es5/tex-svg.js"),
                Path("/usr/share/mathjax/es5/tex-svg.js"),
            ]
        )
        for candidate in candidates:
            try:
                if candidate.is_file():
                    return candidate.resolve()
            except Exception:
                continue
        return None

    def _mathjax_script_sources(self) -> list[str]:
        """Return local-first MathJax script URLs with CDN fallback."""
        sources: list[str] = []
        if self._mathjax_local_script is not None:
            sources.append(self._mathjax_local_script.as_uri())
        sources.append("https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-svg.js")
        return list(dict.fromkeys(sources))

    def render_markdown(self, markdown_text: str) -> str:
        """Render already-preprocessed markdown to an HTML fragment."""
        return self._md.render(markdown_text)

    def render_body(self, source: str, *, now: datetime | None = None) -> str:
        """Run the dialect pass over `source` and render the preview body."""
        return self.render_markdown(preprocess(source, now=now, timezone=self.config.timezone))

    def render_document(self, source: str, title: str, *, now: datetime | None = None) -> str:
        body = self.render_body(source, now=now)
        escaped_title = html.escape(title)
        mathjax_sources_json = json.dumps(self._mathjax_script_sources())
        bridge_prefix_json = json.dumps(BRIDGE_PREFIX)
        return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <title>{escaped_title}</title>
  <style>
    :root {{
      --fg: #1f2937;
      --bg: #e5e7eb;
      --page-bg: #ffffff;
      --code-bg: #f3f4f6;
      --border: #d1d5db;
      --link: #0b57d0;
      --guide: #dc2626;
    }}
    html, body {{
      margin: 0;
      padding: 0;
      background: var(--bg);
      color: var(--fg);
      font-family: "Noto Sans", "DejaVu Sans", sans-serif;
      line-height: 1.55;
      font-size: 16px;
    }}
    .pages-stack {{
      position: relative;
      padding: 1.2rem 0 4rem 0;
    }}
    .preview-content {{
      overflow-x: auto;
    }}
    .page-container {{
      box-sizing: border-box;
      width: 210mm;
      margin: 0 auto;
      padding: 20mm;
      background: var(--page-bg);
      box-shadow: 0 1px 4px rgba(0, 0, 0, 0.18);
    }}
    a {{ color: var(--link); }}
    pre, code {{ font-family: "Noto Sans Mono", "DejaVu Sans Mono", monospace; }}
    code {{ background: var(--code-bg); border-radius: 4px; padding: 0.1rem 0.35rem; }}
    pre {{ background: var(--code-bg); border: 1px solid var(--border); border-radius: 6px; padding: 0.8rem; overflow: auto; }}
    pre > code {{ background: transparent; padding: 0; }}
    table {{ border-collapse: collapse; }}
    th, td {{ border: 1px solid var(--border); padding: 0.4rem 0.6rem; }}
    .sync-target {{ cursor: pointer; }}
    .sync-target:hover {{ outline: 1px dashed rgba(11, 87, 208, 0.25); }}
    .red {{ color: #dc2626; }}
    .blue {{ color: #2563eb; }}
    .green {{ color: #16a34a; }}
    .orange {{ color: #ea580c; }}
    .purple {{ color: #7c3aed; }}
    .gray {{ color: #6b7280; }}
    .center {{ display: block; text-align: center; }}
    .right {{ display: block; text-align: right; }}
    .left {{ display: block; text-align: left; }}
    .underline {{ text-decoration: underline; }}
    mark {{ background: #fde68a; }}
    mark.bg-red {{ background: #fecaca; }}
    mark.bg-blue {{ background: #bfdbfe; }}
    mark.bg-green {{ background: #bbf7d0; }}
    mark.bg-orange {{ background: #fed7aa; }}
    mark.bg-purple {{ background: #ddd6fe; }}
    mark.bg-gray {{ background: #e5e7eb; }}
    .image-caption {{ font-size: 0.9em; color: #4b5563; margin-top: 0.35em; }}
    .keyword-ref {{ text-decoration: underline dotted; }}
    .explanation {{ margin: 0 0 1.2em 0; }}
    .back-link {{ font-size: 0.85em; }}
    .manual-page-break {{ height: 0; margin: 0; border-top: 1px dashed transparent; }}
    .page-guides-container {{ position: absolute; inset: 0; pointer-events: none; }}
    .page-guide {{ position: absolute; left: 0; right: 0; height: 0; }}
    .page-guide .guide-line {{ border-top: 1px dashed var(--guide); }}
    .page-guide .guide-label {{
      position: absolute;
      right: 0.6rem;
      top: -1.1rem;
      font-size: 0.7rem;
      font-weight: 600;
      letter-spacing: 0.04em;
      color: var(--guide);
    }}
    @page {{
      size: A4;
      margin: 20mm;
    }}
    @media print {{
      html, body {{ background: white; }}
      .pages-stack {{ padding: 0; }}
      .page-container {{ width: 100% !important; padding: 0 !important; box-shadow: none; }}
      .manual-page-break {{ break-before: page !important; page-break-before: always !important; visibility: hidden; }}
      .page-guides-container {{ display: none !important; }}
      .sync-target:hover {{ outline: none; }}
    }}
  </style>
  <script>
    window.MathJax = {{
      startup: {{ typeset: true }},
      tex: {{
        inlineMath: [['$', '$']],
        displayMath: [['$$', '$$']]
      }},
      options: {{
        skipHtmlTags: ['script', 'noscript', 'style', 'textarea', 'pre', 'code']
      }}
    }};
    window.__poringmdMathJaxSources = {mathjax_sources_json};
    window.__poringmdLoadMathJax = (index = 0) => {{
      const sources = window.__poringmdMathJaxSources || [];
      if (index >= sources.length) {{
        return;
      }}
      const script = document.createElement("script");
      script.src = sources[index];
      script.async = true;
      script.onerror = () => window.__poringmdLoadMathJax(index + 1);
      document.head.appendChild(script);
    }};
    window.__poringmdLoadMathJax();
  </script>
</head>
<body>
  <div class="pages-stack">
    <div class="page-guides-container"></div>
    <div class="preview-content">
      <div class="page-container markdown-body">
{body}
      </div>
    </div>
  </div>
  <script>
    (() => {{
      const prefix = {bridge_prefix_json};
      const post = (payload) => console.log(prefix + JSON.stringify(payload));
      const stack = document.querySelector(".pages-stack");
      const content = document.querySelector(".preview-content");
      const container = document.querySelector(".page-container");
      const guidesHost = document.querySelector(".page-guides-container");

      content.addEventListener("click", (event) => {{
        const selection = window.getSelection ? String(window.getSelection() || "") : "";
        const path = [];
        let node = event.target instanceof Element ? event.target : null;
        while (node && node !== content) {{
          path.push({{ "{SOURCE_LINE_ATTR}": node.getAttribute("{SOURCE_LINE_ATTR}") }});
          node = node.parentElement;
        }}
        post({{ type: "click", selection, path }});
      }});

      const measure = () => {{
        const containerRect = container.getBoundingClientRect();
        const stackRect = stack.getBoundingClientRect();
        const breaks = Array.from(container.querySelectorAll(".manual-page-break")).map(
          (el) => el.getBoundingClientRect().top - containerRect.top
        );
        return {{
          width: containerRect.width,
          height: container.scrollHeight,
          top: containerRect.top - stackRect.top,
          breaks,
        }};
      }};

      let layoutPending = false;
      const notifyLayout = () => {{
        if (layoutPending) {{
          return;
        }}
        layoutPending = true;
        window.requestAnimationFrame(() => {{
          layoutPending = false;
          post({{ type: "layout", geometry: measure() }});
        }});
      }};

      window.__poringmdSetGuides = (guides) => {{
        guidesHost.innerHTML = "";
        for (const guide of guides || []) {{
          const marker = document.createElement("div");
          marker.className = "page-guide";
          marker.style.top = guide.position + "px";
          const line = document.createElement("div");
          line.className = "guide-line";
          const label = document.createElement("span");
          label.className = "guide-label";
          label.textContent = "PAGE BREAK " + guide.page_number;
          marker.appendChild(line);
          marker.appendChild(label);
          guidesHost.appendChild(marker);
        }}
        return guides ? guides.length : 0;
      }};

      new ResizeObserver(notifyLayout).observe(content);
      new MutationObserver(notifyLayout).observe(content, {{ childList: true, subtree: true, characterData: true }});

      let scrollPending = false;
      window.addEventListener("scroll", () => {{
        if (scrollPending) {{
          return;
        }}
        scrollPending = true;
        window.setTimeout(() => {{
          scrollPending = false;
          post({{ type: "scroll", y: window.scrollY }});
        }}, 150);
      }});

      notifyLayout();
    }})();
  </script>
</body>
</html>
"""

    @staticmethod
    def placeholder_html(message: str) -> str:
        """Render an empty-state page in the preview pane."""
        escaped = html.escape(message)
        return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8"/>
  <style>
    html, body {{
      margin: 0;
      height: 100%;
      background: #e5e7eb;
      color: #374151;
      font-family: "Noto Sans", "DejaVu Sans", sans-serif;
    }}
    main {{
      height: 100%;
      display: grid;
      place-items: center;
      font-size: 1rem;
    }}
  </style>
</head>
<body><main>{escaped}</main></body>
</html>
"""
