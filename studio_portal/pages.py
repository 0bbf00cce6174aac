"""Server-rendered login page for the panel host."""

from html import escape
from typing import Optional

LOGIN_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>Panel Login</title>
<style>
body {{ margin: 0; min-height: 100vh; display: flex; align-items: center; justify-content: center;
       background: #020617; color: #e2e8f0; font-family: system-ui, sans-serif; }}
form {{ width: 320px; padding: 32px; border-radius: 12px; background: #0f172a; border: 1px solid #1e293b; }}
h1 {{ margin: 0 0 24px; font-size: 20px; }}
label {{ display: block; margin-bottom: 6px; font-size: 13px; color: #94a3b8; }}
input {{ width: 100%; box-sizing: border-box; margin-bottom: 16px; padding: 10px; border-radius: 8px;
        border: 1px solid #334155; background: #020617; color: inherit; }}
button {{ width: 100%; padding: 10px; border: 0; border-radius: 8px; background: #6366f1; color: #fff;
         font-weight: 600; cursor: pointer; }}
.error {{ margin-bottom: 16px; padding: 10px; border-radius: 8px; background: rgba(239, 68, 68, .1);
         color: #f87171; font-size: 13px; }}
</style>
</head>
<body>
<form method="post" action="/api/login">
<h1>Panel Login</h1>
{error}
<label for="username">Username</label>
<input id="username" name="username" autocomplete="username" value="{username}" required>
<label for="password">Password</label>
<input id="password" name="password" type="password" autocomplete="current-password" required>
<button type="submit">Sign in</button>
</form>
</body>
</html>
"""


def render_login(error: Optional[str] = None, username: str = "") -> str:
    error_html = f'<div class="error">{escape(error)}</div>' if error else ""
    return LOGIN_TEMPLATE.format(error=error_html, username=escape(username, quote=True))
