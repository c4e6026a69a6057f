"""Command-line interface using Typer."""

import asyncio
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Optional, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from tiktok_kit import __version__
from tiktok_kit.adapters.tiktok import (
    AccountClient,
    OAuthClient,
    PublishOrchestrator,
    Transport,
    build_authorization_url,
    fetch_capabilities,
    get_oauth_config,
    load_oauth_config,
    run_local_login,
)
from tiktok_kit.adapters.tiktok.oauth import PUBLISH_SCOPES, OAuthConfig
from tiktok_kit.config import settings
from tiktok_kit.domain.enums import PostMode, PrivacyLevel, PublishPolicy
from tiktok_kit.domain.models import (
    Credentials,
    LocalFileSource,
    PhotoUrlSource,
    PostRequest,
    PublishSession,
    PublishStatus,
    VideoUrlSource,
)
from tiktok_kit.errors import TikTokError
from tiktok_kit.logging import setup_logging

setup_logging()

app = typer.Typer(
    name="tiktok-kit",
    help="TikTok Login Kit and Content Posting API client",
    add_completion=False,
)

console = Console()

T = TypeVar("T")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"tiktok-kit v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    debug: bool = typer.Option(False, "--debug", help="Log API calls at DEBUG level."),
) -> None:
    """Authorize TikTok accounts and publish videos and photos."""
    if debug:
        setup_logging(level="DEBUG")


def _oauth_config(ini: Optional[Path]) -> OAuthConfig:
    return load_oauth_config(ini) if ini else get_oauth_config()


def _credentials(token: Optional[str]) -> Credentials:
    access_token = token or settings.tiktok_access_token
    if not access_token:
        console.print(
            "[bold red]No access token. Pass --token or set TIKTOK_ACCESS_TOKEN.[/bold red]"
        )
        raise typer.Exit(code=1)
    return Credentials(access_token=access_token)


def _run(token: Optional[str], action: Callable[[Transport], Awaitable[T]]) -> T:
    """Run an async action with a transport, turning API errors into exit code 1."""

    async def runner() -> T:
        async with Transport(_credentials(token)) as transport:
            return await action(transport)

    try:
        return asyncio.run(runner())
    except TikTokError as e:
        console.print(f"[bold red]✗ {e}[/bold red]")
        if e.remote_message:
            console.print(f"[dim]{e.remote_message}[/dim]")
        raise typer.Exit(code=1)


def _print_session(session: PublishSession) -> None:
    console.print(f"[bold green]✓ Publish started: {session.publish_id}[/bold green]")
    if session.log_id:
        console.print(f"[dim]Log ID: {session.log_id}[/dim]")


def _print_status(status: PublishStatus) -> None:
    color = "green" if status.is_complete else "red" if status.is_failed else "yellow"
    console.print(f"[bold {color}]{status.state}[/bold {color}] {status.publish_id}")
    if status.post_ids:
        console.print(f"Post IDs: {', '.join(status.post_ids)}")
    if status.fail_reason or status.error_message:
        console.print(f"[red]{status.fail_reason or status.error_message}[/red]")


def _publish(
    token: Optional[str],
    request: PostRequest,
    policy: PublishPolicy,
    wait: bool,
    interval: float,
    timeout: Optional[float],
) -> None:
    async def action(transport: Transport) -> None:
        orchestrator = PublishOrchestrator(transport)
        session = await orchestrator.publish_with_policy(request, policy)
        _print_session(session)
        if wait:
            with console.status("Waiting for TikTok to process the post..."):
                status = await orchestrator.poller.wait_until_terminal(
                    session.publish_id, interval=interval, timeout=timeout
                )
            _print_status(status)
            if status.is_failed:
                raise typer.Exit(code=1)

    _run(token, action)


TokenOption = typer.Option(
    None, "--token", "-k", help="Access token (default: TIKTOK_ACCESS_TOKEN)"
)
IniOption = typer.Option(
    None, "--ini", help=".ini file with client_id, client_secret and redirect_uri"
)
PrivacyOption = typer.Option(PrivacyLevel.SELF_ONLY, "--privacy", "-p", help="Privacy level")
PolicyOption = typer.Option(
    PublishPolicy.STRICT,
    "--policy",
    help="strict: fail on capability mismatch, coerce: adjust the post, unchecked: skip checks",
)
WaitOption = typer.Option(False, "--wait", "-w", help="Wait until TikTok finishes processing")
IntervalOption = typer.Option(
    settings.publish_poll_interval_seconds, "--interval", help="Seconds between status checks"
)
TimeoutOption = typer.Option(
    settings.publish_max_wait_seconds, "--timeout", help="Maximum seconds to wait"
)


@app.command("auth-url")
def auth_url(
    scopes: list[str] = typer.Option(list(PUBLISH_SCOPES), "--scope", "-s", help="OAuth scope"),
    ini: Optional[Path] = IniOption,
) -> None:
    """Print the authorization URL to send the user to."""
    try:
        url, state = build_authorization_url(_oauth_config(ini), scopes)
    except TikTokError as e:
        console.print(f"[bold red]✗ {e}[/bold red]")
        raise typer.Exit(code=1)
    console.print(url, soft_wrap=True)
    console.print(f"[dim]State: {state}[/dim]")


@app.command()
def login(
    port: int = typer.Option(8085, "--port", help="Local callback port"),
    scopes: list[str] = typer.Option(list(PUBLISH_SCOPES), "--scope", "-s", help="OAuth scope"),
    ini: Optional[Path] = IniOption,
) -> None:
    """Authorize in the browser and print the resulting tokens."""
    try:
        credentials = run_local_login(_oauth_config(ini), scopes, port=port)
    except TikTokError as e:
        console.print(f"[bold red]✗ {e}[/bold red]")
        raise typer.Exit(code=1)
    _print_credentials(credentials)


@app.command()
def exchange(
    code: str = typer.Argument(..., help="Authorization code from the callback"),
    ini: Optional[Path] = IniOption,
) -> None:
    """Exchange an authorization code for tokens."""
    try:
        client = OAuthClient(_oauth_config(ini))
        try:
            credentials = client.exchange_code(code)
        finally:
            client.close()
    except TikTokError as e:
        console.print(f"[bold red]✗ {e}[/bold red]")
        raise typer.Exit(code=1)
    _print_credentials(credentials)


@app.command()
def refresh(
    refresh_token: str = typer.Argument(..., help="Refresh token"),
    ini: Optional[Path] = IniOption,
) -> None:
    """Get a new access token from a refresh token."""
    try:
        client = OAuthClient(_oauth_config(ini))
        try:
            credentials = client.refresh(Credentials(access_token="", refresh_token=refresh_token))
        finally:
            client.close()
    except TikTokError as e:
        console.print(f"[bold red]✗ {e}[/bold red]")
        raise typer.Exit(code=1)
    _print_credentials(credentials)


def _print_credentials(credentials: Credentials) -> None:
    table = Table(title="TikTok Credentials")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("open_id", credentials.open_id)
    table.add_row("access_token", credentials.access_token)
    table.add_row("refresh_token", credentials.refresh_token)
    expires_at = credentials.expires_at.isoformat() if credentials.expires_at else ""
    table.add_row("expires_at", expires_at)
    table.add_row("scope", credentials.scope)
    console.print(table)


@app.command("creator-info")
def creator_info(token: Optional[str] = TokenOption) -> None:
    """Show what the creator is currently allowed to post."""
    snapshot = _run(token, fetch_capabilities)

    table = Table(title=f"@{snapshot.username} ({snapshot.nickname})")
    table.add_column("Capability", style="cyan")
    table.add_column("Value")
    table.add_row("Privacy levels", ", ".join(sorted(snapshot.privacy_levels)))
    table.add_row("Comments disabled", str(snapshot.comment_disabled))
    table.add_row("Duet disabled", str(snapshot.duet_disabled))
    table.add_row("Stitch disabled", str(snapshot.stitch_disabled))
    table.add_row("Max video duration", f"{snapshot.max_video_duration_sec}s")
    console.print(table)


@app.command("publish-file")
def publish_file(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Video file to upload"),
    title: str = typer.Option("", "--title", "-t", help="Caption"),
    privacy: PrivacyLevel = PrivacyOption,
    no_comment: bool = typer.Option(False, "--no-comment", help="Disable comments"),
    no_duet: bool = typer.Option(False, "--no-duet", help="Disable duet"),
    no_stitch: bool = typer.Option(False, "--no-stitch", help="Disable stitch"),
    cover_ms: int = typer.Option(1000, "--cover-ms", help="Cover frame timestamp in ms"),
    policy: PublishPolicy = PolicyOption,
    wait: bool = WaitOption,
    interval: float = IntervalOption,
    timeout: Optional[float] = TimeoutOption,
    token: Optional[str] = TokenOption,
) -> None:
    """Upload and publish a local video file."""
    request = PostRequest(
        source=LocalFileSource.from_path(path),
        title=title,
        privacy_level=privacy,
        disable_comment=no_comment,
        disable_duet=no_duet,
        disable_stitch=no_stitch,
        video_cover_timestamp_ms=cover_ms,
    )
    _publish(token, request, policy, wait, interval, timeout)


@app.command("publish-url")
def publish_url(
    url: str = typer.Argument(..., help="Video URL on a verified domain"),
    title: str = typer.Option("", "--title", "-t", help="Caption"),
    privacy: PrivacyLevel = PrivacyOption,
    no_comment: bool = typer.Option(False, "--no-comment", help="Disable comments"),
    no_duet: bool = typer.Option(False, "--no-duet", help="Disable duet"),
    no_stitch: bool = typer.Option(False, "--no-stitch", help="Disable stitch"),
    cover_ms: int = typer.Option(1000, "--cover-ms", help="Cover frame timestamp in ms"),
    policy: PublishPolicy = PolicyOption,
    wait: bool = WaitOption,
    interval: float = IntervalOption,
    timeout: Optional[float] = TimeoutOption,
    token: Optional[str] = TokenOption,
) -> None:
    """Publish a video TikTok pulls from a URL."""
    request = PostRequest(
        source=VideoUrlSource(url=url),
        title=title,
        privacy_level=privacy,
        disable_comment=no_comment,
        disable_duet=no_duet,
        disable_stitch=no_stitch,
        video_cover_timestamp_ms=cover_ms,
    )
    _publish(token, request, policy, wait, interval, timeout)


@app.command("publish-photos")
def publish_photos(
    urls: list[str] = typer.Argument(..., help="Photo URLs on a verified domain"),
    title: str = typer.Option("", "--title", "-t", help="Title"),
    description: str = typer.Option("", "--description", "-d", help="Description"),
    privacy: PrivacyLevel = PrivacyOption,
    no_comment: bool = typer.Option(False, "--no-comment", help="Disable comments"),
    music: bool = typer.Option(False, "--music", help="Let TikTok add background music"),
    cover: int = typer.Option(0, "--cover", help="Index of the cover photo"),
    inbox: bool = typer.Option(
        False, "--inbox", help="Send to the creator's inbox instead of posting"
    ),
    policy: PublishPolicy = PolicyOption,
    wait: bool = WaitOption,
    interval: float = IntervalOption,
    timeout: Optional[float] = TimeoutOption,
    token: Optional[str] = TokenOption,
) -> None:
    """Publish a photo post (carousel) from URLs."""
    request = PostRequest(
        source=PhotoUrlSource(urls=tuple(urls), cover_index=cover),
        title=title,
        description=description,
        privacy_level=privacy,
        disable_comment=no_comment,
        auto_add_music=music,
        post_mode=PostMode.MEDIA_UPLOAD if inbox else PostMode.DIRECT_POST,
    )
    _publish(token, request, policy, wait, interval, timeout)


@app.command()
def status(
    publish_id: str = typer.Argument(..., help="Publish ID returned by a publish command"),
    wait: bool = WaitOption,
    interval: float = IntervalOption,
    timeout: Optional[float] = TimeoutOption,
    token: Optional[str] = TokenOption,
) -> None:
    """Check (or wait for) the status of a publish job."""

    async def action(transport: Transport) -> PublishStatus:
        orchestrator = PublishOrchestrator(transport)
        if wait:
            return await orchestrator.poller.wait_until_terminal(
                publish_id, interval=interval, timeout=timeout
            )
        return await orchestrator.poller.check_once(publish_id)

    _print_status(_run(token, action))


@app.command()
def videos(
    pages: int = typer.Option(1, "--pages", "-n", help="Pages to fetch (0 = all)"),
    token: Optional[str] = TokenOption,
) -> None:
    """List the creator's published videos."""

    async def action(transport: Transport) -> list:
        client = AccountClient(transport)
        return [video async for video in client.iter_videos(max_pages=pages)]

    table = Table(title="Videos")
    table.add_column("ID", style="cyan")
    table.add_column("Title")
    table.add_column("Views", justify="right")
    table.add_column("Likes", justify="right")
    table.add_column("URL", style="dim")
    for video in _run(token, action):
        table.add_row(
            video.id,
            (video.title or video.description)[:40],
            str(video.view_count),
            str(video.like_count),
            video.share_url,
        )
    console.print(table)


if __name__ == "__main__":
    app()
