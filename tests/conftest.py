import sys
import inspect
from pathlib import Path
import json
import httpx
import pytest

# Ensure repo root is on sys.path so `import deck...` works in tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

WEBHOOK_ORIGIN = "http://webhooks.test"


def pretty_json(obj) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False, sort_keys=True, default=str)


class ScriptedWebhook:
    """Fake webhook server for httpx.MockTransport.

    Every request is recorded in `calls` ({method, path, json}). Replies come from `queue(...)`
    in order; each entry is an httpx.Response, or a callable (sync or async) taking the request.
    When the queue is empty `fallback` is used.
    """

    def __init__(self):
        self.calls = []
        self._replies = []
        self.fallback = lambda request: httpx.Response(500, text="no scripted reply")

    def queue(self, *replies):
        self._replies.extend(replies)
        return self

    def calls_to(self, path):
        return [c for c in self.calls if c["path"] == path]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append({"method": request.method, "path": request.url.path, "json": body})
        reply = self._replies.pop(0) if self._replies else self.fallback
        if callable(reply):
            reply = reply(request)
            if inspect.isawaitable(reply):
                reply = await reply
        return reply

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), base_url=WEBHOOK_ORIGIN)


@pytest.fixture
def webhook():
    return ScriptedWebhook()


@pytest.fixture
def settings_path(tmp_path):
    return str(tmp_path / "ui_settings.json")


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """
    Attach request/response payloads into pytest-html report.

    API tests store payloads like:
      item._api_logs = [{"title": "...", "request": {...}, "response": {...}}, ...]
    """
    outcome = yield
    rep = outcome.get_result()

    if rep.when != "call":
        return

    api_logs = getattr(item, "_api_logs", None)
    if not api_logs:
        return

    extras = getattr(rep, "extra", [])

    try:
        from pytest_html import extras as html_extras
    except ImportError:
        rep.extra = extras
        return

    for entry in api_logs:
        title = entry.get("title", "API Call")
        html = f"""
        <div style="font-family: ui-monospace, SFMono-Regular, Menlo, Monaco, Consolas, monospace;">
          <h4 style="margin:8px 0;">{title}</h4>
          <details style="margin:6px 0;">
            <summary><b>Request</b></summary>
            <pre style="background:#0b1020;color:#cfe3ff;padding:10px;border-radius:8px;overflow:auto;">{pretty_json(entry.get("request", {}))}</pre>
          </details>
          <details style="margin:6px 0;">
            <summary><b>Response</b></summary>
            <pre style="background:#0b1020;color:#cfe3ff;padding:10px;border-radius:8px;overflow:auto;">{pretty_json(entry.get("response", {}))}</pre>
          </details>
        </div>
        """
        extras.append(html_extras.html(html))

    rep.extra = extras
