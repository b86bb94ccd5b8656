"""
Command line interface for commitsage.

This module defines the ``main`` function which is used as the entry
point when executing the ``commitsage`` command. It reads the staged
changes, prepares them with the diff processor, asks the language model
for a commit message (splitting large diffs into concurrent requests)
and lets the user accept, edit, regenerate or cancel before committing.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, Optional

import click

from commitsage import __version__
from commitsage.cancellation import CancellationToken, GenerationCancelledError
from commitsage.config.loader import ConfigError, load_config, processor_config_from
from commitsage.llm.commit_generator import OllamaCommitGenerator
from commitsage.llm.models import GenerationResponse
from commitsage.llm.ollama_client import DEFAULT_MAX_ATTEMPTS, LLMError, OllamaClient
from commitsage.llm.response_parser import validate_commit_message
from commitsage.orchestration.cache import DEFAULT_MAX_ENTRIES, ResponseCache
from commitsage.orchestration.orchestrator import GenerationError, GenerationOrchestrator
from commitsage.processing.diff_processor import DiffProcessor, ProcessingResult
from commitsage.vcs.git_client import GitClient, GitError

# Create a module-level logger. Attach a null handler and disable
# propagation to avoid logging errors when the root logger's stream is
# closed (such as during unit tests). When logging is configured by
# the CLI, root handlers will be added and messages will propagate.
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_LLM_FAILURE = 7
EXIT_CANCELLED = 8

MAX_REGENERATION_ATTEMPTS = 5


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Simple progress indicator for user feedback."""

    def __init__(self, message: str) -> None:
        self.message = message
        self.start_time = 0.0

    def __enter__(self) -> "ProgressIndicator":
        self.start_time = time.time()
        click.echo(f"⠋ {self.message}...", nl=False)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        elapsed = time.time() - self.start_time
        mark = "✗" if exc_type is not None else "✓"
        click.echo(f"\r{mark} {self.message} (took {elapsed:.1f}s)")
        return False


def _enable_package_logging() -> None:
    """Let the package's module loggers reach the handlers set up by the CLI."""
    for name in list(logging.root.manager.loggerDict):
        if name == "commitsage" or name.startswith("commitsage."):
            logging.getLogger(name).propagate = True


def print_info(message: str, indent: int = 0) -> None:
    click.echo(f"{'  ' * indent}ℹ {message}")


def print_success(message: str, indent: int = 0) -> None:
    click.echo(f"{'  ' * indent}✓ {message}")


def print_warning(message: str, indent: int = 0) -> None:
    click.echo(f"{'  ' * indent}⚠ {message}")


def print_error(message: str, indent: int = 0) -> None:
    click.echo(f"{'  ' * indent}✗ {message}", err=True)


def display_message(message: str) -> None:
    """Show a proposed commit message in a box."""
    click.echo("\n💬 Proposed commit message:")
    click.echo("   ┌" + "─" * 74 + "┐")
    for line in message.splitlines() or [""]:
        display_line = line[:72]
        click.echo(f"   │ {display_line.ljust(72)} │")
    click.echo("   └" + "─" * 74 + "┘")
    for issue in validate_commit_message(message):
        print_warning(f"warning: {issue}", indent=1)


def prompt_action() -> str:
    """Ask the user what to do with the proposed message.

    Returns one of ``"a"`` (accept), ``"e"`` (edit), ``"r"``
    (regenerate) or ``"c"`` (cancel).
    """
    choice = click.prompt(
        "   Choose action [A]ccept, [E]dit, [R]egenerate, [C]ancel",
        type=click.Choice(["A", "E", "R", "C", "a", "e", "r", "c"], case_sensitive=False),
        default="A",
        show_choices=False,
        show_default=True,
    )
    return choice.strip().lower()


def edit_message(message: str) -> str:
    """Open the user's editor on ``message``; keep it if the result is empty."""
    edited = click.edit(message)
    if edited is None or not edited.strip():
        print_warning("Empty or unchanged message, using original")
        return message
    print_success("Message edited successfully")
    return edited.strip()


# ---------------------------------------------------------------------------
# Pipeline construction
# ---------------------------------------------------------------------------

def build_orchestrator(config: Dict[str, Any]) -> GenerationOrchestrator:
    """Create the orchestrator and its Ollama backed generator from ``config``."""
    client = OllamaClient(
        base_url=config["base_url"],
        port=config["port"],
        model=config["model"],
        request_timeout=float(config.get("request_timeout", 60)),
        max_tokens=config.get("max_tokens"),
        temperature=config.get("temperature"),
        max_attempts=config.get("max_attempts", DEFAULT_MAX_ATTEMPTS),
    )
    cache = None
    if config.get("cache_enabled", True):
        cache = ResponseCache(
            max_entries=config.get("cache_max_entries", DEFAULT_MAX_ENTRIES),
            ttl=config.get("cache_ttl_minutes", 60) * 60.0,
        )
    return GenerationOrchestrator(
        OllamaCommitGenerator(client),
        max_concurrent_calls=config["max_concurrent_calls"],
        cache=cache,
        cache_scope=config["model"],
    )


def generate_message(
    orchestrator: GenerationOrchestrator,
    result: ProcessingResult,
    config: Dict[str, Any],
    custom_context: str,
    previous_attempt: str,
    use_cache: bool = True,
) -> GenerationResponse:
    token = CancellationToken.with_timeout(config.get("generation_timeout"))
    label = "Generating commit message"
    if result.requires_chunking:
        label += f" ({len(result.groups)} groups)"
    with ProgressIndicator(label):
        return orchestrator.generate(
            result,
            token=token,
            custom_context=custom_context,
            previous_attempt=previous_attempt,
            use_cache=use_cache,
        )


@click.command()
@click.option("--yes", "yes", is_flag=True, help="Accept the generated message without prompting.")
@click.option("--dry-run", is_flag=True, help="Generate the message but do not commit.")
@click.option(
    "--output",
    "output_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="With --dry-run, write the message to this file.",
)
@click.option("--context", "custom_context", default="", help="Custom prompt sent instead of the default one.")
@click.option("--no-cache", is_flag=True, help="Do not reuse a previously generated message.")
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="commitsage")
def main(
    yes: bool,
    dry_run: bool,
    output_file: Optional[Path],
    custom_context: str,
    no_cache: bool,
    verbose: bool,
) -> None:
    """Generate a Conventional Commits message for the staged changes."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(name)s: %(message)s",
        force=True,
    )
    if verbose:
        _enable_package_logging()

    ctx = click.get_current_context(silent=True)

    try:
        repo_root = GitClient.find_repo_root(Path.cwd())
        if repo_root is None:
            print_error("No Git repository found in current directory or parent directories.")
            raise click.exceptions.Exit(EXIT_NO_REPO)
        logger.debug("Repository root: %s", repo_root)

        try:
            config = load_config()
        except ConfigError as exc:
            print_error(f"Configuration error: {exc}")
            raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
        print_info(f"LLM Server: {config['base_url']}:{config['port']} ({config['model']})")

        client = GitClient(repo_root)
        try:
            if not client.has_staged_changes():
                print_warning("No staged changes found. Use 'git add' to stage changes first.")
                raise click.exceptions.Exit(EXIT_NO_CHANGES)
            with ProgressIndicator("Reading staged changes"):
                records = client.get_staged_records()
        except GitError as exc:
            print_error(f"Git error: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)

        result = DiffProcessor(processor_config_from(config)).process(records)
        if result.is_empty:
            print_warning("No changes to commit after filtering lock files.")
            raise click.exceptions.Exit(EXIT_NO_CHANGES)
        print_success(
            f"Found {len(result.records)} changed file{'s' if len(result.records) != 1 else ''} "
            f"({result.total_size} bytes of diff)"
        )

        orchestrator = build_orchestrator(config)
        previous_attempt = ""
        regenerations = 0
        while True:
            try:
                response = generate_message(
                    orchestrator,
                    result,
                    config,
                    custom_context,
                    previous_attempt,
                    use_cache=not no_cache,
                )
            except KeyboardInterrupt:
                print_warning("Generation interrupted")
                raise click.exceptions.Exit(EXIT_CANCELLED)
            except (LLMError, GenerationError, GenerationCancelledError) as exc:
                print_error(f"Failed to generate commit message: {exc}")
                print_info("Make sure Ollama is running and accessible", indent=1)
                raise click.exceptions.Exit(EXIT_LLM_FAILURE)

            message = response.format_message()
            display_message(message)
            action = "a" if yes else prompt_action()

            if action == "a":
                break
            if action == "e":
                message = edit_message(message)
                break
            if action == "r":
                regenerations += 1
                if regenerations >= MAX_REGENERATION_ATTEMPTS:
                    print_error(f"Maximum regeneration attempts ({MAX_REGENERATION_ATTEMPTS}) reached")
                    raise click.exceptions.Exit(EXIT_GENERIC_ERROR)
                previous_attempt = response.raw_text or message
                continue
            print_warning("Commit cancelled")
            raise click.exceptions.Exit(EXIT_CANCELLED)

        if dry_run:
            if output_file is not None:
                try:
                    output_file.write_text(message, encoding="utf-8")
                except OSError as exc:
                    print_error(f"Failed to write to file {output_file}: {exc}")
                    raise click.exceptions.Exit(EXIT_GENERIC_ERROR)
                print_success(f"Message written to {output_file}")
            else:
                print_success("Dry-run complete - message generated but not committed")
            raise click.exceptions.Exit(EXIT_SUCCESS)

        try:
            with ProgressIndicator("Committing changes"):
                client.commit(message)
        except GitError as exc:
            print_error(f"Failed to commit: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)

        print_success("Successfully committed!")
        raise click.exceptions.Exit(EXIT_SUCCESS)

    except click.exceptions.Exit:
        # Click uses its own Exit exception; re-raise to let Click handle it
        raise
    except click.exceptions.Abort:
        raise
    except Exception as exc:
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        ctx.exit(EXIT_GENERIC_ERROR)
