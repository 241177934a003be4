#!/usr/bin/env python
"""Interactive terminal search over the translation database."""
from __future__ import annotations

import asyncio
import html
import re
import sys
from dataclasses import replace
from pathlib import Path

from rich.console import Console
from rich.text import Text
from rich.table import Table
from rich.prompt import Prompt, Confirm

from twmt_search.config import Config
from twmt_search.config.constants import APP_VERSION
from twmt_search.models import (
    SearchOperator,
    SearchOptions,
    SearchQuery,
    SearchResultsModel,
    SearchScope,
)
from twmt_search.services import SearchService


_MARK_RE = re.compile(r"<mark>(.*?)</mark>", re.DOTALL)

_TYPE_LABELS = {
    "translation_unit": ("UNIT", "cyan"),
    "translation_version": ("TRAN", "green"),
    "translation_memory": ("TM", "magenta"),
    "glossary_entry": ("GLOS", "yellow"),
}


def marked_text(highlighted: str, style: str = "bold yellow") -> Text:
    """Render ``<mark>`` spans from a highlighted snippet as styled text."""
    text = Text()
    cursor = 0
    for match in _MARK_RE.finditer(highlighted):
        text.append(html.unescape(highlighted[cursor:match.start()]))
        text.append(html.unescape(match.group(1)), style=style)
        cursor = match.end()
    text.append(html.unescape(highlighted[cursor:]))
    return text


class SearchCLI:
    def __init__(self, service: SearchService | None = None):
        self.console = Console()
        self.config = Config.load()
        self.service = service or SearchService.from_config(self.config)
        self.query = SearchQuery(
            options=SearchOptions(results_per_page=self.config.search.results_per_page),
        )
        self.page: SearchResultsModel | None = None

    def run(self):
        """Main CLI loop"""
        self.console.clear()
        self.console.print("[bold cyan]TWMT Translation Search[/bold cyan]")
        self.console.print("Enter search query (or 'help' for commands, 'quit' to exit)\n")

        while True:
            try:
                line = Prompt.ask(f"[bold green]Search[/bold green] [dim]({self._mode_label()})[/dim]")
                command, _, argument = line.strip().partition(" ")
                command = command.lower()
                if argument and command not in ("save", "run"):
                    command = ""

                if command == "quit":
                    break
                elif command == "help":
                    self._show_help()
                elif command == "scope":
                    self._change_scope()
                elif command == "operator":
                    self._change_operator()
                elif command == "regex":
                    self._toggle("use_regex")
                elif command == "phrase":
                    self._toggle("phrase_search")
                elif command == "prefix":
                    self._toggle("prefix_search")
                elif command in ("next", "prev"):
                    self._turn_page(1 if command == "next" else -1)
                elif command == "history":
                    self._show_history()
                elif command == "saved":
                    self._show_saved()
                elif command == "save":
                    self._save(argument)
                elif command == "run":
                    self._run_saved(argument)
                elif command == "stats":
                    self._show_stats()
                elif line.strip():
                    self._search(line.strip())

            except KeyboardInterrupt:
                self.console.print("\n[yellow]Search interrupted[/yellow]")
                continue
            except EOFError:
                break

        self.console.print("\n[green]Goodbye![/green]")

    def _show_help(self):
        """Show help information"""
        help_text = """
[bold cyan]Commands:[/bold cyan]
  [yellow]<text>[/yellow]         - Search with the current mode
  [yellow]scope[/yellow]          - Change scope (source/target/both/key/all)
  [yellow]operator[/yellow]       - Change how terms combine (and/or/not)
  [yellow]regex[/yellow]          - Toggle regular expression mode
  [yellow]phrase[/yellow]         - Toggle exact phrase matching
  [yellow]prefix[/yellow]         - Toggle prefix matching on the last term
  [yellow]next[/yellow] / [yellow]prev[/yellow]    - Page through results
  [yellow]history[/yellow]        - Show recent searches
  [yellow]saved[/yellow]          - List saved searches
  [yellow]save <name>[/yellow]    - Save the last search
  [yellow]run <number>[/yellow]   - Run a saved search from the list
  [yellow]stats[/yellow]          - Search statistics
  [yellow]help[/yellow]           - Show this help
  [yellow]quit[/yellow]           - Exit

[bold cyan]Search Tips:[/bold cyan]
  • [green]+term[/green] requires a term, [green]|[/green] means OR, [green]-term[/green] excludes it
  • Quote exact phrases: "iron shield"
  • Regex mode runs on unindexed text and is slower
        """
        self.console.print(help_text)

    def _mode_label(self) -> str:
        options = self.query.options
        parts = [self.query.scope.value, self.query.operator.value]
        if options.use_regex:
            parts.append("regex")
        if options.phrase_search:
            parts.append("phrase")
        if options.prefix_search:
            parts.append("prefix")
        return ", ".join(parts)

    def _change_scope(self):
        choice = Prompt.ask("Scope", choices=[s.value for s in SearchScope], default=self.query.scope.value)
        self.query = replace(self.query, scope=SearchScope(choice))
        self.console.print(f"[green]Scope changed to: {self.query.scope.display_name}[/green]")

    def _change_operator(self):
        choice = Prompt.ask("Operator", choices=[o.value for o in SearchOperator], default=self.query.operator.value)
        self.query = replace(self.query, operator=SearchOperator(choice))
        self.console.print(f"[green]Operator changed to: {choice.upper()}[/green]")

    def _toggle(self, option: str):
        enabled = not getattr(self.query.options, option)
        self.query = replace(self.query, options=replace(self.query.options, **{option: enabled}))
        state = "on" if enabled else "off"
        self.console.print(f"[green]{option.replace('_', ' ')}: {state}[/green]")

    def _search(self, text: str, page: int = 1):
        """Execute search"""
        self.query = replace(self.query, text=text)
        self.console.print(f"\n[dim]Searching {self.query.summary}...[/dim]")
        self.page = asyncio.run(self.service.run_query(self.query, page))
        self._display_results()

    def _turn_page(self, step: int):
        if self.page is None:
            self.console.print("[yellow]Run a search first[/yellow]")
            return
        target = self.page.current_page + step
        if (step > 0 and not self.page.has_next_page) or (step < 0 and not self.page.has_previous_page):
            self.console.print("[yellow]No more pages[/yellow]")
            return
        self.page = asyncio.run(self.service.run_query(self.query, target))
        self._display_results()

    def _display_results(self):
        """Display search results with context"""
        page = self.page
        if page is None:
            return
        if page.error:
            self.console.print(f"[red]Search error: {page.error}[/red]")
            return
        if not page.results:
            self.console.print("[yellow]No results found[/yellow]")
            return

        self.console.print(f"[green]{page.range_text}[/green] [dim](page {page.current_page} of {max(page.total_pages, 1)})[/dim]\n")
        for i, result in enumerate(page.results, 1):
            label, color = _TYPE_LABELS.get(result.type.value, ("?", "white"))
            text = Text()
            text.append(f"{i:3}. ", style="bold cyan")
            text.append(f"[{label}] ", style=color)
            if result.key:
                text.append(result.key[:60], style="bold")
            if result.language_code:
                text.append(f" ({result.language_code})", style="dim")
            if result.project_name:
                text.append(f" | {result.project_name[:30]}", style="dim")
            text.append(f" | {result.relevance_score:.2f}\n", style="dim")
            text.append("     ")
            text.append(marked_text(result.highlighted_text[:300]))

            self.console.print(text)
            self.console.print("     " + "─" * 70, style="dim")

    def _show_history(self):
        outcome = self.service.get_history()
        if not outcome.ok:
            self.console.print(f"[red]{outcome.error}[/red]")
            return
        table = Table(title="Recent searches")
        table.add_column("When", style="dim")
        table.add_column("Query")
        table.add_column("Results", justify="right")
        for entry in outcome.value:
            table.add_row(entry.searched_at.strftime("%b %d %H:%M"), entry.query, str(entry.result_count))
        self.console.print(table)

    def _show_saved(self):
        outcome = self.service.get_saved_searches()
        if not outcome.ok:
            self.console.print(f"[red]{outcome.error}[/red]")
            return
        if not outcome.value:
            self.console.print("[yellow]No saved searches[/yellow]")
            return
        table = Table(title="Saved searches")
        table.add_column("#", justify="right")
        table.add_column("Name", style="bold")
        table.add_column("Query")
        table.add_column("Uses", justify="right")
        for i, saved in enumerate(outcome.value, 1):
            table.add_row(str(i), saved.name, saved.query, str(saved.usage_count))
        self.console.print(table)

    def _save(self, name: str):
        if not self.query.text.strip():
            self.console.print("[yellow]Run a search first[/yellow]")
            return
        name = name.strip() or Prompt.ask("Name")
        outcome = self.service.save_search(name, self.query.text, self.query.filter)
        if outcome.ok:
            self.console.print(f"[green]Saved '{outcome.value.name}'[/green]")
        else:
            self.console.print(f"[red]{outcome.error}[/red]")

    def _run_saved(self, argument: str):
        outcome = self.service.get_saved_searches()
        if not outcome.ok:
            self.console.print(f"[red]{outcome.error}[/red]")
            return
        if not argument.isdigit() or not 1 <= int(argument) <= len(outcome.value):
            self.console.print("[red]Invalid selection[/red]")
            return
        saved = outcome.value[int(argument) - 1]
        result = asyncio.run(self.service.run_saved_search(saved.id))
        if not result.ok:
            self.console.print(f"[red]{result.error}[/red]")
            return
        self.query = result.value.query
        self.page = result.value
        self._display_results()

    def _show_stats(self):
        outcome = self.service.get_statistics()
        if not outcome.ok:
            self.console.print(f"[red]{outcome.error}[/red]")
            return
        stats = outcome.value
        self.console.print(
            f"[bold]Searches:[/bold] {stats['total_searches']} "
            f"([dim]{stats['unique_queries']} unique, avg {stats['avg_results']} results[/dim])"
        )
        self.console.print(f"[bold]Saved searches:[/bold] {stats['saved_searches_count']}")
        for term in stats["most_searched_terms"][:5]:
            self.console.print(f"  {term['query']} [dim]x{term['search_count']}[/dim]")
        if stats["total_searches"] and Confirm.ask("Clear history?", default=False):
            removed = self.service.clear_history()
            if removed.ok:
                self.console.print(f"[green]Removed {removed.value} entries[/green]")


def main():
    """Entry point"""
    prog = Path(sys.argv[0]).name
    argv = set(sys.argv[1:])
    if prog.startswith("twmt-search"):
        if "--version" in argv:
            print(APP_VERSION)
            return
        if "-h" in argv or "--help" in argv:
            print("Usage: twmt-search")
            print()
            print("Interactive terminal UI for searching translation projects.")
            print()
            return

    cli = SearchCLI()
    cli.run()


if __name__ == "__main__":
    main()
