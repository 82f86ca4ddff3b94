# cachectl CLI: main entry point
"""cachectl CLI — manage Cloud Memorystore instances from the terminal."""

from __future__ import annotations

import json
from pathlib import Path

import click

from ..config import settings


@click.group()
@click.version_option(version=settings.app_version, prog_name="cachectl")
@click.option("--debug", is_flag=True, default=False, help="Verbose file logging")
def cli(debug: bool):
    """cachectl — declarative Cloud Memorystore (Redis) instances."""
    from ..common import init_logging

    init_logging(debug=debug or settings.debug)


@cli.command()
def status():
    """Show engine status, provider configs and managed instances."""
    from rich.console import Console

    from ..common import get_log_file, print_header
    from ..db import SessionLocal, init_db
    from ..services.registry import registry

    init_db()
    console = Console()
    print_header(f"cachectl v{settings.app_version}")
    console.print(f"Database: {settings.effective_database_url}")
    console.print(f"Environment: {settings.environment}")
    log_file = get_log_file()
    if log_file:
        console.print(f"Log file: {log_file}")

    db = SessionLocal()
    try:
        providers = registry.list_providers(db, active_only=False)
        instances = registry.list_instances(db)
        console.print(f"Provider configs: {len(providers)}")
        console.print(f"Managed instances: {len(instances)}")
        if not providers:
            console.print("[dim]No providers registered. Use 'cachectl providers add' to register one.[/dim]")
    finally:
        db.close()


@cli.command()
@click.option("--interval", default=None, type=int, help="Seconds between passes")
@click.option("--once", is_flag=True, default=False, help="Run a single pass and exit")
def run(interval: int | None, once: bool):
    """Run the reconcile driver."""
    import asyncio

    from ..common import print_info, print_success
    from ..db import SessionLocal, init_db
    from ..services.scheduler import build_reconciler, reconcile_loop, reconcile_once

    if once:
        init_db()
        db = SessionLocal()
        try:
            results = reconcile_once(db, build_reconciler())
        finally:
            db.close()
        failed = sum(1 for r in results.values() if not r.succeeded)
        print_success(f"Reconciled {len(results)} instances ({failed} failed)")
        return

    print_info(f"Reconciling every {interval or settings.reconcile_interval}s (Ctrl-C to stop)")
    try:
        asyncio.run(reconcile_loop(interval))
    except KeyboardInterrupt:
        print_info("Stopped")


# ---------------------------------------------------------------------------
# Provider commands
# ---------------------------------------------------------------------------


@cli.group()
def providers():
    """Manage provider configs (GCP accounts)."""
    pass


@providers.command("list")
def providers_list():
    """List registered provider configs."""
    from rich.console import Console
    from rich.table import Table

    from ..db import SessionLocal, init_db
    from ..services.registry import registry

    init_db()
    console = Console()
    db = SessionLocal()
    try:
        items = registry.list_providers(db, active_only=False)
        if not items:
            console.print("[dim]No providers registered.[/dim]")
            return
        table = Table(title="Providers")
        table.add_column("ID", style="cyan")
        table.add_column("Type")
        table.add_column("Name")
        table.add_column("Project")
        table.add_column("Region")
        table.add_column("Active")
        for p in items:
            table.add_row(
                p.id, p.provider_type, p.display_name, p.project_id or "-",
                p.region or "-", "✔" if p.is_active else "✖",
            )
        console.print(table)
    finally:
        db.close()


@providers.command("add")
@click.option("--id", "provider_id", default="default", help="Unique provider ID")
@click.option("--name", "display_name", required=True, help="Display name")
@click.option("--project", "project_id", default="", help="GCP project (defaults to the key's project)")
@click.option("--region", default="", help="Region used when an instance sets none")
@click.option("--credentials", "credentials_path", required=True, help="Path to a service-account JSON key")
def providers_add(provider_id: str, display_name: str, project_id: str, region: str, credentials_path: str):
    """Register a new provider config."""
    from ..common import die, print_success
    from ..db import SessionLocal, init_db
    from ..services.registry import registry

    init_db()
    db = SessionLocal()
    try:
        if registry.get_provider(db, provider_id) is not None:
            die(f"Provider '{provider_id}' already exists")
        provider = registry.create_provider(
            db,
            id=provider_id,
            provider_type="gcp",
            display_name=display_name,
            project_id=project_id,
            region=region,
            credentials_path=credentials_path,
        )
        print_success(f"Provider '{provider.id}' registered ({provider.provider_type})")
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Instance commands
# ---------------------------------------------------------------------------


@cli.group()
def instances():
    """Manage Cloud Memorystore instances."""
    pass


@instances.command("list")
def instances_list():
    """List managed instances and their last observed state."""
    from rich.console import Console
    from rich.table import Table

    from ..apis.common import ConditionType
    from ..db import SessionLocal, init_db
    from ..services.registry import registry

    init_db()
    console = Console()
    db = SessionLocal()
    try:
        items = registry.list_instances(db)
        if not items:
            console.print("[dim]No instances managed.[/dim]")
            return
        table = Table(title="Instances")
        table.add_column("Name", style="cyan")
        table.add_column("Provider")
        table.add_column("Region")
        table.add_column("State")
        table.add_column("Ready")
        table.add_column("Synced")
        table.add_column("Endpoint")
        for mg in items:
            at_provider = mg.status.at_provider
            ready = mg.status.get_condition(ConditionType.READY)
            synced = mg.status.get_condition(ConditionType.SYNCED)
            state = at_provider.state or "-"
            if mg.metadata.deletion_requested:
                state = f"[red]{state} (deleting)[/red]"
            endpoint = f"{at_provider.host}:{at_provider.port}" if at_provider.host else "-"
            table.add_row(
                mg.metadata.name,
                mg.spec.provider_config_ref,
                mg.spec.for_provider.region or "-",
                state,
                ready.reason.value if ready else "-",
                "✔" if synced and synced.status else "✖" if synced else "-",
                endpoint,
            )
        console.print(table)
    finally:
        db.close()


@instances.command("apply")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def instances_apply(path: Path):
    """Create or update an instance from a JSON document."""
    from pydantic import ValidationError

    from ..common import die, print_success
    from ..db import SessionLocal, init_db
    from ..services.registry import KINDS, registry

    try:
        document = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        die(f"{path}: invalid JSON: {e}")

    kind = document.pop("kind", "CloudMemorystoreInstance")
    cls = KINDS.get(kind)
    if cls is None:
        die(f"Unsupported kind '{kind}'. Supported: {', '.join(KINDS)}")
    # Status belongs to the engine
    document.pop("status", None)
    try:
        mg = cls.model_validate(document)
    except ValidationError as e:
        die(f"{path}: {e}")

    init_db()
    db = SessionLocal()
    try:
        try:
            mg = registry.apply_instance(db, mg)
        except ValueError as e:
            die(str(e))
        print_success(f"{mg.kind} '{mg.metadata.name}' applied")
    finally:
        db.close()


@instances.command("show")
@click.argument("name")
def instances_show(name: str):
    """Show one instance and its recent actions."""
    from rich.console import Console
    from rich.table import Table

    from ..common import die
    from ..db import SessionLocal, init_db
    from ..services.registry import registry

    init_db()
    console = Console()
    db = SessionLocal()
    try:
        mg = registry.get_instance(db, name)
        if mg is None:
            die(f"Instance '{name}' not found")
        console.print_json(mg.model_dump_json())

        actions = registry.list_actions(db, instance_name=name, limit=10)
        if actions:
            table = Table(title="Recent actions")
            table.add_column("When")
            table.add_column("Action")
            table.add_column("Status")
            table.add_column("By")
            for a in actions:
                style = "green" if a.status == "success" else "red"
                table.add_row(
                    a.created_at.strftime("%Y-%m-%d %H:%M:%S"), a.action_type,
                    f"[{style}]{a.status}[/{style}]", a.initiated_by,
                )
            console.print(table)
    finally:
        db.close()


@instances.command("reconcile")
@click.argument("name")
def instances_reconcile(name: str):
    """Run one reconcile pass for an instance now."""
    from ..common import die, print_detail, print_error, print_success, print_warning
    from ..db import SessionLocal, init_db
    from ..services.scheduler import build_reconciler, reconcile_instance

    init_db()
    db = SessionLocal()
    try:
        result = reconcile_instance(db, build_reconciler(), name)
    finally:
        db.close()

    if result is None:
        die(f"Instance '{name}' not found")
    if result.error is not None:
        print_error(f"{result.action.value} failed: {result.error}")
        raise SystemExit(1)
    if result.finalized:
        print_success(f"'{name}' deleted")
        return
    print_success(f"{result.action.value}: '{name}' is {result.phase.value}")
    if result.remote_state:
        print_detail(f"Remote state: {result.remote_state}")
    for key, value in sorted(result.connection_details.items()):
        print_detail(f"{key}: {value.decode()}")
    if result.requeue:
        print_warning("Not settled yet; reconcile again to confirm")


@instances.command("delete")
@click.argument("name")
@click.option("--yes", is_flag=True, default=False, help="Skip confirmation")
def instances_delete(name: str, yes: bool):
    """Request deletion; the next pass deletes the remote instance."""
    from ..common import die, print_success
    from ..db import SessionLocal, init_db
    from ..services.registry import registry

    if not yes:
        click.confirm(f"Delete instance '{name}' and its Redis data?", abort=True)

    init_db()
    db = SessionLocal()
    try:
        if not registry.request_deletion(db, name):
            die(f"Instance '{name}' not found")
        print_success(f"Deletion of '{name}' requested")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
