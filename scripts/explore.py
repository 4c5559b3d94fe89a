#!/usr/bin/env python3
"""
scripts/explore.py
------------------
Textual TUI for the Skill Context Engine.

Two tabs:
  [🔎 Explore] — request input, ranked matches, assembled context bundle
  [📋 Logs]    — raw API event log

Usage:
  pip install -e ".[tui]"
  python scripts/explore.py [--url http://localhost:8000] [--max-bytes 20000]

Requires the backend:
  cd backend && uvicorn api.main:app --port 8000
"""

import argparse
import time

import requests
from rich.text import Text
from textual import on, work
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import (
    Footer,
    Header,
    Input,
    Label,
    RichLog,
    Static,
    TabbedContent,
    TabPane,
)


# ─────────────────────────────────────────────────────────────────────────────
# Config
# ─────────────────────────────────────────────────────────────────────────────

DEFAULT_URL = "http://localhost:8000"
DEFAULT_MAX_BYTES = 20000


# ─────────────────────────────────────────────────────────────────────────────
# API helpers  (sync — always called from background thread workers)
# ─────────────────────────────────────────────────────────────────────────────

def _get(base_url: str, path: str, timeout: int = 30) -> dict:
    r = requests.get(f"{base_url}{path}", timeout=timeout)
    r.raise_for_status()
    return r.json()


def _post(base_url: str, path: str, body: dict, timeout: int = 30) -> dict:
    r = requests.post(f"{base_url}{path}", json=body, timeout=timeout)
    r.raise_for_status()
    return r.json()


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _budget_markup(used: int, max_bytes: int) -> str:
    pct = min(1.0, used / max_bytes) if max_bytes else 1.0
    filled = int(pct * 16)
    bar = "█" * filled + "░" * (16 - filled)
    color = "green" if pct < 0.6 else "yellow" if pct < 0.9 else "red"
    return f"[{color}]Budget [{bar}] {used}/{max_bytes} bytes[/{color}]"


def _match_line(rank: int, result: dict) -> str:
    terms = ", ".join(result.get("matchedTerms", [])) or "—"
    return (
        f"[yellow]{rank:>2}.[/yellow] [bold]{result['name']}[/bold] "
        f"[dim]({result['descriptorId']})[/dim]  "
        f"[cyan]{result['score']:.2f}[/cyan]  [dim]{terms}[/dim]"
    )


# ─────────────────────────────────────────────────────────────────────────────
# App
# ─────────────────────────────────────────────────────────────────────────────

class SkillExplorerApp(App[None]):
    """Skill Context Engine — explorer TUI."""

    TITLE = "Skill Context Engine"
    SUB_TITLE = "Match & Assemble"

    CSS = """
    TabbedContent, TabPane {
        height: 1fr;
    }
    #controls {
        height: auto;
        border: round #3b82f6;
        padding: 0 2;
    }
    #query-input {
        width: 3fr;
    }
    #budget-input {
        width: 1fr;
        margin-left: 1;
    }
    #budget-bar {
        margin-top: 1;
    }
    #results-row {
        height: 1fr;
        layout: horizontal;
    }
    #match-log {
        width: 2fr;
        border: round #22c55e;
        padding: 0 1;
    }
    #bundle-log {
        width: 3fr;
        border: round #92400e;
        padding: 0 1;
        margin-left: 1;
    }
    #status-bar {
        height: 1;
        background: #111827;
        color: #6b7280;
        padding: 0 2;
        dock: bottom;
    }
    #event-log {
        height: 1fr;
        padding: 1;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "reload_registry", "Reload skills"),
    ]

    def __init__(self, base_url: str = DEFAULT_URL, max_bytes: int = DEFAULT_MAX_BYTES) -> None:
        super().__init__()
        self.base_url = base_url
        self.max_bytes = max_bytes
        self._ready: bool = False

    # ── Compose ──────────────────────────────────────────────────────────────

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        with TabbedContent(initial="explore-pane"):
            with TabPane("🔎  Explore", id="explore-pane"):
                with Vertical(id="controls"):
                    yield Label("[bold]Describe the task[/bold]  [dim](Enter to run)[/dim]")
                    with Horizontal():
                        yield Input(placeholder="e.g. add a typing indicator to a LiveView chat", id="query-input")
                        yield Input(value=str(self.max_bytes), placeholder="max bytes", id="budget-input")
                    yield Static("", id="budget-bar", markup=True)
                with Horizontal(id="results-row"):
                    yield RichLog(id="match-log", highlight=True, markup=True, wrap=True)
                    yield RichLog(id="bundle-log", highlight=False, markup=True, wrap=True)
                yield Static("…", id="status-bar", markup=True)

            with TabPane("📋  Logs", id="logs-pane"):
                yield RichLog(id="event-log", highlight=True, markup=True, wrap=True)

        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#query-input", Input).disabled = True
        self._wait_for_backend_worker()

    # ── Startup ──────────────────────────────────────────────────────────────

    @work(thread=True)
    def _wait_for_backend_worker(self) -> None:
        for attempt in range(1, 16):
            try:
                health = _get(self.base_url, "/health", timeout=5)
                break
            except Exception:
                if attempt == 15:
                    self.call_from_thread(self._fatal, "Backend unreachable after 15 attempts.")
                    return
                self.call_from_thread(
                    self._set_status,
                    f"Waiting for backend… (attempt {attempt}/15)",
                )
                time.sleep(2)
        self.call_from_thread(self._on_backend_ready, health)

    def _on_backend_ready(self, health: dict) -> None:
        self._ready = True
        count = health.get("descriptors", 0)
        self._log(f"[green]Backend ready[/green] — {count} skill(s) loaded")
        self._set_status(f"{count} skill(s) loaded. Type a request and press Enter.")
        inp = self.query_one("#query-input", Input)
        inp.disabled = False
        inp.focus()

    # ── Query flow ───────────────────────────────────────────────────────────

    @on(Input.Submitted, "#query-input")
    @on(Input.Submitted, "#budget-input")
    def _on_query_submitted(self, event: Input.Submitted) -> None:
        if not self._ready:
            return
        text = self.query_one("#query-input", Input).value.strip()
        if not text:
            self._set_status("[red]Enter a request first[/red]")
            return
        raw_budget = self.query_one("#budget-input", Input).value.strip()
        try:
            self.max_bytes = max(0, int(raw_budget)) if raw_budget else self.max_bytes
        except ValueError:
            self._set_status("[red]Max bytes must be a number[/red]")
            return

        self._set_status("Matching…")
        self._log(f"[green]Query:[/green] {text} [dim](maxBytes={self.max_bytes})[/dim]")
        self._query_worker(text, self.max_bytes)

    @work(thread=True, exclusive=True)
    def _query_worker(self, text: str, max_bytes: int) -> None:
        try:
            matches = _post(self.base_url, "/match", {"text": text})
            bundle = _post(self.base_url, "/assemble", {"text": text, "maxBytes": max_bytes})
        except requests.HTTPError as exc:
            self.call_from_thread(
                self._fatal,
                f"Request failed {exc.response.status_code}: {exc.response.text[:200]}",
            )
            return
        except Exception as exc:
            self.call_from_thread(self._fatal, f"Request error: {exc}")
            return
        self.call_from_thread(self._render_results, matches, bundle, max_bytes)

    def _render_results(self, matches: list, bundle: dict, max_bytes: int) -> None:
        match_log = self.query_one("#match-log", RichLog)
        match_log.clear()
        if not matches:
            match_log.write("[dim]No skill matched this request.[/dim]")
        for rank, result in enumerate(matches, start=1):
            match_log.write(_match_line(rank, result))

        bundle_log = self.query_one("#bundle-log", RichLog)
        bundle_log.clear()
        for warning in bundle.get("warnings", []):
            bundle_log.write(f"[red]⚠ {warning.get('message', warning)}[/red]")
        for item in bundle.get("included", []):
            bundle_log.write(
                f"[cyan bold]{item['name']}[/cyan bold] [dim]{item['id']} · {item['reason']}[/dim]"
            )
        if bundle.get("text"):
            bundle_log.write("")
            bundle_log.write(Text(bundle["text"]), shrink=False)

        total = bundle.get("totalBytes", 0)
        self.query_one("#budget-bar", Static).update(_budget_markup(total, max_bytes))
        self._set_status(
            f"{len(matches)} match(es), {len(bundle.get('included', []))} included, {total} bytes"
        )
        self._log(f"[dim]Included: {[i['id'] for i in bundle.get('included', [])]}[/dim]")

    # ── Reload ───────────────────────────────────────────────────────────────

    def action_reload_registry(self) -> None:
        self._set_status("Reloading skills…")
        self._log("[yellow]Reloading skill library…[/yellow]")
        self._reload_worker()

    @work(thread=True)
    def _reload_worker(self) -> None:
        try:
            summary = _post(self.base_url, "/registry/reload", {})
        except requests.HTTPError as exc:
            self.call_from_thread(
                self._set_status,
                f"[red]Reload failed {exc.response.status_code}[/red] (previous skills kept)",
            )
            self.call_from_thread(self._log, f"[red]Reload:[/red] {exc.response.text[:200]}")
            return
        except Exception as exc:
            self.call_from_thread(self._fatal, f"Reload error: {exc}")
            return
        self.call_from_thread(
            self._set_status,
            f"Reloaded: {summary['descriptors']} skill(s), {summary['conflicts']} conflict(s)",
        )
        for error in summary.get("loadErrors", []):
            self.call_from_thread(self._log, f"[red]Malformed:[/red] {error['path']} — {error['reason']}")

    # ── Utilities ────────────────────────────────────────────────────────────

    def _set_status(self, msg: str) -> None:
        self.query_one("#status-bar", Static).update(msg)

    def _log(self, msg: str) -> None:
        self.query_one("#event-log", RichLog).write(msg)

    def _fatal(self, msg: str) -> None:
        self._set_status(f"[bold red]{msg}[/bold red]")
        self._log(f"[bold red]FATAL:[/bold red] {msg}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Skill Context Engine explorer TUI")
    parser.add_argument("--url", default=DEFAULT_URL, help="Backend base URL")
    parser.add_argument("--max-bytes", type=int, default=DEFAULT_MAX_BYTES, help="Initial byte budget")
    args = parser.parse_args()
    SkillExplorerApp(base_url=args.url, max_bytes=args.max_bytes).run()


if __name__ == "__main__":
    main()
