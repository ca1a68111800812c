# reviewbridge/routers/oauth_popup.py
import json

from fastapi.responses import HTMLResponse

from reviewbridge.config import Settings

_PAGE = """<!DOCTYPE html>
<html>
  <body>
    <script>
      (function () {{
        var message = {message};
        if (window.opener) {{
          window.opener.postMessage(message, {target_origin});
          window.close();
        }} else {{
          window.location.href = {fallback_url};
        }}
      }})();
    </script>
  </body>
</html>
"""


def _js(value) -> str:
    # JSON is valid JS; escaping <, > and & keeps it inert inside <script>
    return (
        json.dumps(value)
        .replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
    )


def _render(settings: Settings, message: dict, fallback_path: str) -> HTMLResponse:
    html = _PAGE.format(
        message=_js(message),
        target_origin=_js(settings.FRONTEND_URL),
        fallback_url=_js(f"{settings.FRONTEND_URL}{fallback_path}"),
    )
    return HTMLResponse(html, headers={"Cache-Control": "no-store"})


def link_success_page(settings: Settings, provider: str, name, email) -> HTMLResponse:
    message = {
        "type": f"{provider.upper()}_AUTH_SUCCESS",
        "provider": provider,
        "user": {"name": name or "", "email": email or ""},
    }
    return _render(settings, message, f"/dashboard/settings?success={provider}_connected")


def link_failure_page(settings: Settings, provider: str) -> HTMLResponse:
    message = {
        "type": f"{provider.upper()}_AUTH_ERROR",
        "provider": provider,
        "error": f"Failed to connect {provider.capitalize()} account",
    }
    return _render(settings, message, f"/dashboard/settings?error={provider}_failed")
