"""
MJML Email Templates
Automation emails share one responsive layout; the body is the plain-text message.
"""

import html
import logging

from mjml import mjml_to_html

logger = logging.getLogger(__name__)

THEME = {
    "primary": "#2563eb",
    "background": "#f8fafc",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "border": "#e2e8f0",
}


def get_base_template(title: str, body: str) -> str:
    """Base MJML wrapper. title and body must already be HTML-escaped."""
    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{title}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="40px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="22px" font-weight="600" color="{THEME['text_primary']}" padding="0 0 16px 0">
              {title}
            </mj-text>
            <mj-divider border-color="{THEME['border']}" border-width="1px" padding="0 0 24px 0" />
            <mj-text padding="0">
              {body}
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    result = mjml_to_html(mjml_content)
    # mjml_to_html returns a dict with 'html' and 'errors' keys
    if isinstance(result, dict):
        if result.get("errors"):
            logger.warning(f"MJML compilation warnings: {result['errors']}")
        return result.get("html", "")
    return str(result)


def render_email_html(subject: str, content: str) -> str:
    body = "<br/>".join(html.escape(line) for line in content.splitlines())
    return compile_mjml_to_html(get_base_template(html.escape(subject), body))
