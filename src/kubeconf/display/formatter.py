# src/kubeconf/display/formatter.py
import difflib
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from kubeconf.core.models import KubeConfig


class KubeConfigFormatter:
    """
    Terminal rendering for KUBECONFIG summaries and canonicalization diffs.
    Only names and references are shown; credentials never reach the console.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_contexts(self, config: KubeConfig):
        """
        Renders one row per context. The current context is starred and
        references that resolve to nothing are flagged in red.
        """
        table = Table(title="KUBECONFIG Contexts", show_header=True, header_style="bold magenta")
        table.add_column("Current", justify="center")
        table.add_column("Name")
        table.add_column("Cluster")
        table.add_column("User")
        table.add_column("Namespace", style="dim")

        for entry in config.contexts:
            ctx = entry.context
            cluster = ctx.cluster if ctx else ""
            user = ctx.user if ctx else ""

            cluster_cell, user_cell = escape(cluster), escape(user)
            if cluster and config.find_cluster(cluster) is None:
                cluster_cell = f"[red]{cluster_cell} (missing)[/red]"
            if user and config.find_user(user) is None:
                user_cell = f"[red]{user_cell} (missing)[/red]"

            table.add_row(
                "*" if entry.name == config.current_context else "",
                escape(entry.name),
                cluster_cell,
                user_cell,
                escape(ctx.namespace) if ctx else "",
            )

        self.console.print(table)

        if config.current_context and config.active_context() is None:
            self.console.print(f"[bold yellow]current-context '{escape(config.current_context)}' "
                               f"does not match any context[/bold yellow]")

    def display_diff(self, original_text: str, canonical_text: str, file_name: str):
        """
        Shows what canonicalization would change in a document.
        """
        diff_list = list(difflib.unified_diff(
            original_text.splitlines(),
            canonical_text.splitlines(),
            fromfile=f"Original: {file_name}",
            tofile="Canonical",
            lineterm=""
        ))

        if not diff_list:
            self.console.print(f"[dim]No formatting changes needed for {file_name}.[/dim]")
            return

        syntax = Syntax("\n".join(diff_list), "diff", theme="monokai", line_numbers=True)
        self.console.print(Panel(
            syntax,
            title=f"Canonical Form: {file_name}",
            border_style="green"
        ))
