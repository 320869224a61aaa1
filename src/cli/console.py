"""Colored console output for the migration commands."""
import click
from colorama import Fore, Style


def header(title: str):
    """Print a section header."""
    click.echo(f"\n{Fore.CYAN}{'━' * 45}")
    click.echo(f"{Fore.CYAN}{title}")
    click.echo(f"{Fore.CYAN}{'━' * 45}{Style.RESET_ALL}\n")


def info(message: str):
    click.echo(f"{Fore.BLUE}ℹ️  {message}{Style.RESET_ALL}")


def success(message: str):
    click.echo(f"{Fore.GREEN}✅ {message}{Style.RESET_ALL}")


def warning(message: str):
    click.echo(f"{Fore.YELLOW}⚠️  {message}{Style.RESET_ALL}")


def error(message: str):
    click.echo(f"{Fore.RED}❌ {message}{Style.RESET_ALL}", err=True)


def step(message: str):
    click.echo(f"{Fore.CYAN}🔄 {message}{Style.RESET_ALL}")


def plain(message: str = ""):
    click.echo(message)
