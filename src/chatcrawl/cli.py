import asyncio

import click

from . import CrawlReport, crawl_conversation
from .errors import CrawlError
from .runtime import reset_verbose_logging, set_verbose_logging
from .settings import CrawlSettings, build_crawl_settings
from .telegram import (
    ApiCredentials,
    TelegramDirectory,
    TelegramMessageSource,
    load_credentials,
    make_client,
    save_credentials,
    sign_in,
)


def _prompt_credentials() -> ApiCredentials:
    api_id = click.prompt("Enter your API ID", type=int)
    api_hash = click.prompt("Enter your API hash").strip()
    return ApiCredentials(api_id=api_id, api_hash=api_hash)


def _report_found(found: int, visited: int) -> None:
    click.echo(f"Found {found} usernames from {visited} messages")
    click.echo("Resolving usernames...")


async def _run(
    conversation: str,
    credentials: ApiCredentials,
    settings: CrawlSettings,
    *,
    save_new_credentials: bool,
) -> CrawlReport:
    click.echo("Connecting to Telegram servers...")
    client = make_client(credentials, settings.session)
    try:
        await sign_in(
            client,
            phone=lambda: click.prompt("Enter your phone number"),
            code=lambda: click.prompt("Enter the code"),
            password=lambda: click.prompt(
                "Enter the password", hide_input=True
            ).strip(),
        )
        click.echo("Connected!")
        if save_new_credentials:
            save_credentials(credentials)

        directory = TelegramDirectory(client)
        chat = await directory.get_chat(conversation)
        if chat is None:
            raise click.ClickException(
                f"Could not find a chat with the username {conversation}"
            )
        return await crawl_conversation(
            conversation,
            chat,
            TelegramMessageSource(client),
            directory,
            settings=settings,
            on_crawled=_report_found,
        )
    finally:
        await client.disconnect()


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("conversation", required=False)
@click.option(
    "-f",
    "--format",
    "out_format",
    type=click.Choice(["json", "yaml"], case_sensitive=False),
    default=None,
    help="Output format. Defaults to $CHATCRAWL_FORMAT or json.",
)
@click.option(
    "-o",
    "--output-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory for <conversation>.json (default: current directory).",
)
@click.option(
    "-j",
    "--jobs",
    type=int,
    default=None,
    help="Concurrent username lookups (default: $CHATCRAWL_RESOLVE_JOBS or 4).",
)
@click.option(
    "--retries",
    type=int,
    default=None,
    help="Extra attempts for lookups that hit flood waits or network errors.",
)
@click.option(
    "--limit",
    type=int,
    default=None,
    help="Stop after this many messages instead of crawling the whole history.",
)
@click.option(
    "--cache/--no-cache",
    "use_cache",
    default=None,
    help="Reuse recent lookups from disk (default: $CHATCRAWL_USE_CACHE or off).",
)
@click.option(
    "--refresh-cache", is_flag=True, help="Ignore cached lookups but store new ones"
)
@click.option(
    "--cache-ttl",
    default=None,
    help="How long cached lookups stay valid, e.g. 12h or 3d.",
)
@click.option(
    "--session",
    default=None,
    help="Telethon session file (default: $CHATCRAWL_SESSION or crawler.session).",
)
@click.option("-v", "--verbose", is_flag=True, help="Log lookups and retries to stderr")
def cli(
    conversation,
    out_format,
    output_dir,
    jobs,
    retries,
    limit,
    use_cache,
    refresh_cache,
    cache_ttl,
    session,
    verbose,
):
    """
    Crawl a Telegram chat and rank the chats, channels and users it links to.
    """
    try:
        settings = build_crawl_settings(
            {
                "format": out_format.lower() if out_format else None,
                "output_dir": output_dir,
                "resolve_jobs": jobs,
                "resolve_retries": retries,
                "message_limit": limit,
                "use_cache": use_cache,
                "refresh_cache": refresh_cache or None,
                "cache_ttl": cache_ttl,
                "session": session,
            }
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    if not conversation:
        conversation = click.prompt("Enter the username").strip()

    credentials = load_credentials()
    prompted = credentials is None
    if credentials is None:
        credentials = _prompt_credentials()

    token = set_verbose_logging(verbose)
    try:
        report = asyncio.run(
            _run(conversation, credentials, settings, save_new_credentials=prompted)
        )
    except CrawlError as exc:
        raise click.ClickException(
            f"Crawl of {conversation} failed after {exc.messages_visited} messages: "
            f"{exc.__cause__}"
        ) from exc
    except OSError as exc:
        raise click.ClickException(str(exc)) from exc
    finally:
        reset_verbose_logging(token)

    click.echo(
        f"Saved {len(report.resolved)} usernames from {report.messages_visited} "
        f"messages to {report.output_path}"
    )


def main():
    cli()


if __name__ == "__main__":
    main()
