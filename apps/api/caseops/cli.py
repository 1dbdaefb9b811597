"""CLI tools for case console administration."""

import logging

import click

from caseops.core.async_utils import run_async
from caseops.core.config import settings
from caseops.db.documents import DocumentStore, close_document_store, connect_document_store
from caseops.db.enums import Role
from caseops.schemas.user import UserRecord
from caseops.services.case_store import CaseStore
from caseops.services.enrichment_service import resolve_actor_email
from caseops.services.identity_store import IdentityStore

logger = logging.getLogger(__name__)

LEGACY_PLACEHOLDER_REASON = "Legacy identity placeholder"


async def backfill_legacy_identities(
    store: DocumentStore,
    legacy_emails: dict[str, str],
    *,
    dry_run: bool = False,
) -> dict[str, int]:
    """
    One-off reconciliation of historical creator ids.

    - Writes a blocked placeholder user document for each legacy uid that
      has neither its own document nor a linked one, so lookups resolve to
      the recorded email.
    - Stores ``user_email`` on activity entries written without it.

    Returns counts of documents written (or that would be written).
    """
    identities = IdentityStore(store)
    cases = CaseStore(store)
    counts = {"identities": 0, "activities": 0}

    for uid, email in sorted(legacy_emails.items()):
        if await identities.find_user_by_any_uid(uid):
            continue
        counts["identities"] += 1
        if not dry_run:
            await identities.create_user(UserRecord(
                user_id=uid,
                email=email,
                role=Role.BLOCKED.value,
                blocked=True,
                blocked_reason=LEGACY_PLACEHOLDER_REASON,
            ))

    resolved: dict[str, str] = {}
    for entry in await cases.list_activities():
        if entry.user_email:
            continue
        if entry.created_by not in resolved:
            resolved[entry.created_by] = await resolve_actor_email(identities, entry.created_by)
        counts["activities"] += 1
        if not dry_run:
            await cases.backfill_activity_email(entry.id, resolved[entry.created_by])

    return counts


@click.group()
def cli():
    """Case console CLI tools."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")


@cli.command("backfill-legacy-identities")
@click.option("--dry-run", is_flag=True, help="Report what would change without writing")
def backfill_legacy_identities_command(dry_run: bool):
    """
    Reconcile LEGACY_IDENTITY_EMAILS into the identity store.

    Run once per environment; afterwards the legacy table can be emptied.

    Example:
        python -m caseops.cli backfill-legacy-identities --dry-run
    """
    async def _run() -> dict[str, int]:
        store = await connect_document_store()
        try:
            return await backfill_legacy_identities(
                store, settings.LEGACY_IDENTITY_EMAILS, dry_run=dry_run
            )
        finally:
            close_document_store()

    counts = run_async(_run())
    prefix = "Would write" if dry_run else "Wrote"
    click.echo(f"{prefix} {counts['identities']} identity document(s)")
    click.echo(f"{prefix} user_email on {counts['activities']} activity entries")


if __name__ == "__main__":
    cli()
