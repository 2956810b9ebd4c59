"""
Command Line Interface for MailTerm.
"""

import asyncio
import logging
from typing import List, Optional

import inquirer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

from mailterm.config import save_config
from mailterm.providers import MessageSummary, ProviderError, ProviderType, summary_line

logger = logging.getLogger(__name__)
console = Console()


def display_welcome_message(app):
    """Display a welcome message for the CLI interface."""
    service = app.active_service.label if app.active_service else "no service selected"
    console.print(Panel.fit(
        "[bold blue]MailTerm[/bold blue]\n\n"
        f"Reading mail from [bold]{service}[/bold]. Type 'help' for commands.",
        title="Welcome",
        border_style="blue"
    ))


def display_help():
    """Display help information."""
    help_table = Table(show_header=True, header_style="bold magenta")
    help_table.add_column("Command", style="dim")
    help_table.add_column("Description")

    help_table.add_row("list / refresh", "Show the first page of the current folder")
    help_table.add_row("next", "Show the next page")
    help_table.add_row("open <n>", "Read message number n")
    help_table.add_row("delete <n>", "Delete message number n")
    help_table.add_row("folders", "List folders or labels")
    help_table.add_row("folder <id>", "Switch to another folder")
    help_table.add_row("switch", "Choose another email service")
    help_table.add_row("setup", "Run the setup wizard")
    help_table.add_row("help", "Show this help message")
    help_table.add_row("exit/quit", "Exit the application")

    console.print(Panel(help_table, title="Available Commands", border_style="blue"))


def display_messages(summaries: List[MessageSummary], title: str):
    """Display one page of message summaries."""
    if not summaries:
        console.print("[yellow]No more messages[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Message")
    table.add_column("From", style="dim")

    for number, summary in enumerate(summaries, start=1):
        text, _ = summary_line(summary)
        table.add_row(str(number), escape(text), escape(getattr(summary, 'sender', '')))

    console.print(Panel(table, title=title, border_style="blue"))


def display_folders(app):
    """Display the folders of the active service."""
    folders = asyncio.run(app.client.list_folders())
    if not folders:
        console.print("[yellow]No folders found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Folder ID")
    table.add_column("Name")
    table.add_column("Unread", justify="right")

    for folder in folders:
        table.add_row(escape(folder.folder_id), escape(folder.name), str(folder.unread_count))

    console.print(Panel(table, title="Folders", border_style="blue"))


def pick_message(listing: List[MessageSummary], argument: str) -> Optional[MessageSummary]:
    """
    Resolve a 1-based message number from the current listing.

    Returns:
        The summary, or None if the argument is not a listed number
    """
    try:
        number = int(argument)
    except ValueError:
        return None
    if 1 <= number <= len(listing):
        return listing[number - 1]
    return None


def _listing_title(app) -> str:
    folder = app.client.session.folder_id or app.client.provider.default_folder
    return f"{app.active_service.label} - {folder}"


def _ask_service(message: str, default: Optional[ProviderType] = None) -> Optional[ProviderType]:
    answers = inquirer.prompt([
        inquirer.List(
            'service',
            message=message,
            choices=[(p.label, p) for p in ProviderType],
            default=default
        )
    ])
    return answers['service'] if answers else None


def prompt_for_credentials(config, service: ProviderType) -> bool:
    """Prompt for the settings of one service and store them in config."""
    section = config[service.value]
    console.print(f"\n[bold]{service.label} Setup[/bold]")

    if service == ProviderType.GMAIL:
        questions = [
            inquirer.Text('credentials_file', message="OAuth client secrets file",
                          default=section.get('credentials_file', '')),
            inquirer.Text('token_file', message="Token file", default=section.get('token_file', '')),
        ]
    elif service == ProviderType.GRAPH:
        questions = [
            inquirer.Text('tenant_id', message="Tenant ID", default=section.get('tenant_id', '')),
            inquirer.Text('client_id', message="Client ID", default=section.get('client_id', '')),
            inquirer.Password('client_secret', message="Client secret"),
            inquirer.Text('user_email', message="Mailbox (blank for the first directory user)",
                          default=section.get('user_email', '')),
        ]
    else:
        questions = [
            inquirer.Text('server', message="IMAP server", default=section.get('server', '')),
            inquirer.Text('port', message="Port", default=section.get('port', '993')),
            inquirer.Confirm('use_ssl', message="Use SSL/TLS?", default=section.getboolean('use_ssl', True)),
            inquirer.Text('username', message="Username", default=section.get('username', '')),
        ]

    answers = inquirer.prompt(questions)
    if not answers:
        return False

    if service == ProviderType.IMAP:
        answers['password'] = Prompt.ask("Password", password=True)

    for key, value in answers.items():
        section[key] = str(value).lower() if isinstance(value, bool) else str(value)
    return True


def run_setup_wizard(app) -> bool:
    """
    Ask for a service and its credentials, then save config.ini.

    Returns:
        True if a usable service is active afterwards
    """
    console.print("\n[bold]MailTerm Setup[/bold]")
    service = _ask_service("Select your email service", default=app.active_service)
    if service is None:
        return False

    if not prompt_for_credentials(app.config, service):
        return False

    app.config["general"]["selected_service"] = service.value
    path = save_config(app.config, str(app.config_path))
    console.print(f"[green]Configuration saved to {path}[/green]")

    app.reload_config()
    if app.active_service is None:
        console.print(f"[red]{service.label} is still not configured. Check {path}.[/red]")
        return False

    with console.status("[bold green]Testing connection...[/bold green]"):
        result = asyncio.run(app.client.test_connection())
    if result.get('success'):
        console.print(f"[green]{escape(result.get('message', 'Connection successful'))}[/green]")
    else:
        console.print(f"[yellow]Connection test failed: {escape(str(result.get('error')))}[/yellow]")
    return True


def start_cli(app):
    """Start the command-line interface."""
    display_welcome_message(app)
    listing: List[MessageSummary] = []

    def show_page(fetch, keep_on_empty=False):
        nonlocal listing
        with console.status("[bold green]Fetching messages...[/bold green]"):
            page = asyncio.run(fetch())
        if page or not keep_on_empty:
            listing = page
        display_messages(page, _listing_title(app))

    try:
        show_page(app.client.refresh)
    except ProviderError as e:
        console.print(f"[red]Error listing messages: {e}[/red]")

    # Main CLI loop
    while True:
        command = ''
        try:
            user_input = Prompt.ask("\n[bold green]MailTerm[/bold green]", default="help")
            command = user_input.strip()
            verb, _, argument = command.partition(' ')
            verb = verb.lower()
            argument = argument.strip()

            if verb in ('exit', 'quit'):
                console.print("[yellow]Exiting MailTerm...[/yellow]")
                break

            elif verb == 'help':
                display_help()

            elif verb in ('list', 'refresh'):
                show_page(app.client.refresh)

            elif verb == 'next':
                show_page(app.client.next_page, keep_on_empty=True)

            elif verb == 'open':
                summary = pick_message(listing, argument)
                if summary is None:
                    console.print("[yellow]Please give a message number: open <n>[/yellow]")
                    continue
                text, message_id = summary_line(summary)
                with console.status("[bold green]Loading message...[/bold green]"):
                    content = asyncio.run(app.client.open_message(message_id))
                console.print(Panel(Text(content), title=escape(text), border_style="green"))

            elif verb == 'delete':
                summary = pick_message(listing, argument)
                if summary is None:
                    console.print("[yellow]Please give a message number: delete <n>[/yellow]")
                    continue
                text, message_id = summary_line(summary)
                if not Confirm.ask(f"Delete '{escape(text)}'?", default=False):
                    continue
                if asyncio.run(app.client.delete_message(message_id)):
                    listing.remove(summary)
                    console.print("[green]Message deleted[/green]")
                else:
                    console.print("[red]Could not delete message[/red]")

            elif verb == 'folders':
                display_folders(app)

            elif verb == 'folder':
                if not argument:
                    console.print("[yellow]Please specify a folder: folder <id>[/yellow]")
                    continue
                app.client.select_folder(argument)
                show_page(app.client.refresh)

            elif verb == 'switch':
                service = _ask_service("Switch to", default=app.active_service)
                if service is None:
                    continue
                if app.select_service(service):
                    show_page(app.client.refresh)
                else:
                    console.print(f"[red]{service.label} is not configured. Run 'setup' first.[/red]")

            elif verb == 'setup':
                if run_setup_wizard(app):
                    show_page(app.client.refresh)

            else:
                console.print("[yellow]Unknown command. Type 'help' for available commands.[/yellow]")

        except KeyboardInterrupt:
            console.print("\n[yellow]Interrupted. Use 'exit' to quit.[/yellow]")
        except EOFError:
            console.print("\n[yellow]Exiting MailTerm...[/yellow]")
            break
        except Exception as e:
            logger.error(f"Command '{command}' failed: {e}")
            console.print(f"[red]Error: {e}[/red]")

    asyncio.run(app.client.close())
