"""CLI interface for syncing VS Code settings profiles."""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import click
from rich.progress import Progress, SpinnerColumn, TextColumn

from .config import config
from .exceptions import AuthError, ConfigError, SettingsSyncError
from .local import ExtensionManager, LocalUserStore, resolve_user_dir
from .output import OutputFormatter
from .profiles import (
    create_profile,
    find_remote_profile,
    get_active_profile,
    get_or_init_profile,
    list_remote_profiles,
    rename_profile,
    switch_profile,
)
from .providers import PROVIDERS, create_provider
from .resolver import ensure_remote_ready
from .session import SyncSession
from .state import SessionStateManager
from .sync import SyncEngine
from .utils import format_timestamp

logger = logging.getLogger(__name__)

PROVIDER_CHOICES = sorted(PROVIDERS)


@contextmanager
def _spinner(out: OutputFormatter, description: str) -> Iterator[None]:
    """Show a transient spinner while a remote operation runs."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=out.console,
        transient=True,
        disable=out.quiet or out.json_output,
    ) as progress:
        progress.add_task(description, total=None)
        yield


def _build_session(ctx: Any) -> SyncSession:
    """Create the session from the global options, config and state.

    Raises:
        ConfigError: If no provider or token is configured
    """
    state: SessionStateManager = ctx.obj["state"]
    kind = ctx.obj.get("provider") or config.provider or state.load().provider
    token = ctx.obj.get("token") or config.token
    if not kind or not token:
        raise ConfigError("Not configured. Run 'pysettingsync configure' first.")
    return SyncSession(
        provider=create_provider(kind, token),
        state=state,
        repo_name=config.repo_name,
        base_path=config.base_path,
        owner=config.repo_owner,
    )


def _build_engine(session: SyncSession, out: OutputFormatter) -> SyncEngine:
    extensions = ExtensionManager(config.code_command)
    return SyncEngine(
        session,
        LocalUserStore(resolve_user_dir(config.user_data_dir)),
        extensions,
        output=out,
        vscode_version=extensions.editor_version(),
    )


@click.group()
@click.option(
    "--token", "-t", envvar="PYSETTINGSYNC_TOKEN", help="GitHub/Gitee access token"
)
@click.option(
    "--provider",
    "-p",
    type=click.Choice(PROVIDER_CHOICES),
    envvar="PYSETTINGSYNC_PROVIDER",
    help="Remote provider",
)
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option(package_name="pysettingsync")
@click.pass_context
def main(
    ctx: Any,
    token: Optional[str],
    provider: Optional[str],
    quiet: bool,
    json: bool,
    verbose: bool,
) -> None:
    """pysettingsync - Sync VS Code settings profiles to GitHub or Gitee."""
    ctx.ensure_object(dict)
    ctx.obj["token"] = token
    ctx.obj["provider"] = provider
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["state"] = SessionStateManager(config.config_dir)

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("pysettingsync").setLevel(logging.DEBUG)
        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(logging.WARNING)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--provider",
    "provider_kind",
    type=click.Choice(PROVIDER_CHOICES),
    prompt="Choose provider",
    help="Remote provider",
)
@click.option(
    "--token",
    prompt="Personal access token",
    hide_input=True,
    help="Personal access token for the provider",
)
@click.pass_context
def configure(ctx: Any, provider_kind: str, token: str) -> None:
    """Configure the provider and token.

    Validates the token, stores it in ~/.config/pysettingsync/config and
    makes sure the sync repository exists (it is created private if missing).
    """
    out: OutputFormatter = ctx.obj["out"]
    state: SessionStateManager = ctx.obj["state"]

    try:
        provider = create_provider(provider_kind, token)
        out.info("Validating token...")
        login = provider.get_viewer_login()
    except AuthError as e:
        out.error(str(e))
        ctx.exit(1)
    except SettingsSyncError as e:
        out.error(f"Could not validate token: {e}")
        ctx.exit(1)

    previous = state.load()
    if previous.provider != provider_kind:
        # Cached owner and branch belong to the other backend.
        state.update(branch=None)
    config.save_token(token)
    state.update(provider=provider_kind, repo_owner=config.repo_owner or login)

    session = SyncSession(
        provider=provider,
        state=state,
        repo_name=config.repo_name,
        base_path=config.base_path,
        owner=config.repo_owner,
    )
    try:
        profile = get_or_init_profile(state)
        with _spinner(out, "Preparing remote repository..."):
            ref = ensure_remote_ready(session)
    except SettingsSyncError as e:
        out.error(str(e))
        ctx.exit(1)
    finally:
        session.close()

    if out.json_output:
        out.output_json(
            {
                "provider": provider_kind,
                "login": login,
                "repository": f"{ref.owner}/{ref.repo}",
                "branch": ref.branch,
                "profile": profile.display_name,
            }
        )
    else:
        out.success(f"Configured {provider_kind} as {login}")
        out.info(f"Repository: {ref.owner}/{ref.repo} (branch {ref.branch})")
        out.info(f"Configuration saved to {config.get_config_path()}")


@main.command()
@click.pass_context
def status(ctx: Any) -> None:
    """Show the configured provider, repository and active profile."""
    out: OutputFormatter = ctx.obj["out"]
    state: SessionStateManager = ctx.obj["state"]
    current = state.load()
    provider = ctx.obj.get("provider") or config.provider or current.provider
    configured = bool(provider and (ctx.obj.get("token") or config.is_configured()))

    info = {
        "configured": configured,
        "provider": provider,
        "owner": current.repo_owner,
        "repository": current.repo_name or config.repo_name,
        "branch": current.branch,
        "basePath": config.base_path,
        "profileId": current.profile_id,
        "profile": current.profile_display_name,
    }
    if out.json_output:
        out.output_json(info)
        return

    if not configured:
        out.warning("Not configured. Run 'pysettingsync configure' first.")
    out.print(f"Provider:   {provider or '-'}")
    out.print(f"Repository: {current.repo_owner or '?'}/{info['repository']}")
    out.print(f"Branch:     {current.branch or '(not resolved yet)'}")
    out.print(f"Base path:  {config.base_path}")
    if current.profile_id:
        out.print(f"Profile:    {current.profile_display_name} ({current.profile_id})")
    else:
        out.print("Profile:    (none selected)")


@main.command()
@click.option("--dry-run", is_flag=True, help="Show what would be uploaded")
@click.pass_context
def upload(ctx: Any, dry_run: bool) -> None:
    """Upload settings, keybindings, snippets and extensions list."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        session = _build_session(ctx)
        try:
            profile = get_or_init_profile(session.state)
            engine = _build_engine(session, out)
            with _spinner(out, "Uploading..."):
                result = engine.upload(profile, dry_run=dry_run)
        finally:
            session.close()
    except SettingsSyncError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json(result.to_dict())
    elif dry_run:
        out.info(f"Dry run: would upload to {result.destination}")
        for path in result.written:
            out.print(f"  {path}")
    else:
        out.success(f"Uploaded settings to {result.destination}")


@main.command()
@click.pass_context
def download(ctx: Any) -> None:
    """Download the active profile and install its extensions."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        session = _build_session(ctx)
        try:
            profile = get_or_init_profile(session.state)
            engine = _build_engine(session, out)
            with _spinner(out, "Downloading..."):
                result = engine.download(profile)
        finally:
            session.close()
    except SettingsSyncError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json(result.to_dict())
        return

    for outcome in result.failed_snippets:
        out.warning(f"Skipped snippet {outcome.name}: {outcome.error}")
    for outcome in result.failed_extensions:
        out.warning(f"Could not install {outcome.name}: {outcome.error}")
    out.success(f"Downloaded settings from {result.source}")


@main.command()
@click.pass_context
def profiles(ctx: Any) -> None:
    """List the profiles stored in the remote repository."""
    out: OutputFormatter = ctx.obj["out"]

    try:
        session = _build_session(ctx)
        try:
            with _spinner(out, "Listing profiles..."):
                ref = ensure_remote_ready(session)
                remote = list_remote_profiles(session.provider, ref, session.base_path)
        finally:
            session.close()
    except SettingsSyncError as e:
        out.error(str(e))
        ctx.exit(1)

    active = get_active_profile(ctx.obj["state"])
    current_id = active.id if active else None

    if out.json_output:
        out.output_json(
            [dict(p.meta.to_dict(), current=p.id == current_id) for p in remote]
        )
        return
    if not remote:
        out.info("No profiles found. Run 'pysettingsync upload' to create one.")
        return
    out.print_table(
        ["", "Name", "ID", "Last sync", "Platform"],
        [
            [
                "*" if p.id == current_id else "",
                p.label,
                p.id,
                format_timestamp(p.meta.last_sync_at),
                p.meta.platform or "",
            ]
            for p in remote
        ],
    )


@main.command()
@click.argument("profile_key")
@click.pass_context
def switch(ctx: Any, profile_key: str) -> None:
    """Switch to an existing remote profile.

    PROFILE_KEY: Profile id or display name
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        session = _build_session(ctx)
        try:
            ref = ensure_remote_ready(session)
            remote = list_remote_profiles(session.provider, ref, session.base_path)
        finally:
            session.close()
    except SettingsSyncError as e:
        out.error(str(e))
        ctx.exit(1)

    match = find_remote_profile(remote, profile_key)
    if match is None:
        out.error(f"Profile not found: {profile_key}")
        out.info("Run 'pysettingsync profiles' to list available profiles")
        ctx.exit(1)

    profile = switch_profile(ctx.obj["state"], match.id, match.label)
    if out.json_output:
        out.output_json({"id": profile.id, "displayName": profile.display_name})
    else:
        out.success(f"Switched to profile: {profile.display_name}")


@main.command("create-profile")
@click.argument("display_name")
@click.pass_context
def create_profile_command(ctx: Any, display_name: str) -> None:
    """Create a new remote profile and switch to it.

    DISPLAY_NAME: Human-readable label (e.g. vue, csharp)
    """
    out: OutputFormatter = ctx.obj["out"]

    try:
        session = _build_session(ctx)
        try:
            ensure_remote_ready(session)
            version = ExtensionManager(config.code_command).editor_version()
            profile = create_profile(session, display_name, vscode_version=version)
        finally:
            session.close()
    except SettingsSyncError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json({"id": profile.id, "displayName": profile.display_name})
    else:
        out.success(f"Switched to profile: {profile.display_name} ({profile.id})")


@main.command("rename-profile")
@click.argument("display_name")
@click.pass_context
def rename_profile_command(ctx: Any, display_name: str) -> None:
    """Rename the active profile (its id stays the same).

    DISPLAY_NAME: New human-readable label
    """
    out: OutputFormatter = ctx.obj["out"]

    active = get_active_profile(ctx.obj["state"])
    if active is None:
        out.error("No active profile. Run 'pysettingsync upload' or 'switch' first.")
        ctx.exit(1)

    try:
        session = _build_session(ctx)
        try:
            ensure_remote_ready(session)
            profile = rename_profile(session, active, display_name)
        finally:
            session.close()
    except SettingsSyncError as e:
        out.error(str(e))
        ctx.exit(1)

    if out.json_output:
        out.output_json({"id": profile.id, "displayName": profile.display_name})
    else:
        out.success(f"Renamed profile {active.display_name} to {profile.display_name}")


if __name__ == "__main__":
    main()
