"""
provision.py
------------
Operator commands: seed the demo accounts and check that the database accepts
writes.

    python provision.py seed-demo-users
    python provision.py check-store
"""
import logging

import click
from firebase_admin.exceptions import FirebaseError

from config import load_settings
from database import DocumentStore
from errors import PortalError
from identity import IdentityProvider
from log import configure_logging
from schemas import UserProfile, utc_timestamp

LOGGER = logging.getLogger("portal.provision")

DEMO_USERS = [
    {
        "uid": "demo-student-id",
        "email": "studentid@gmail.com",
        "password": "student@123",
        "display_name": "Demo Student ID",
        "role": "student",
        "approved": True,
    },
    {
        "uid": "demo-professor-id",
        "email": "professorid@gmail.com",
        "password": "professor@123",
        "display_name": "Demo Professor ID",
        "role": "teacher",
        "approved": True,
    },
]


def seed_demo_users(provider: IdentityProvider, store: DocumentStore, users=DEMO_USERS) -> int:
    """Create each demo account and its profile; returns how many failed."""
    failures = 0
    for user in users:
        click.echo(f"Processing: {user['email']} ({user['role']})")
        try:
            provider.recreate_user(user["uid"], user["email"], user["password"], user["display_name"])
            click.echo(f"  auth user created: {user['email']}")
            profile = UserProfile(
                username=user["display_name"],
                email=user["email"],
                role=user["role"],
                approved=user["approved"],
                created_at=utc_timestamp(),
                email_verified=True,
            )
            store.save_profile(user["uid"], {**profile.to_document(), "uid": user["uid"]})
            click.echo(f"  profile saved: {user['uid']}")
        except (FirebaseError, PortalError) as exc:
            failures += 1
            LOGGER.error("Error processing %s: %s", user["email"], exc)
            click.echo(f"  error processing {user['email']}: {exc}", err=True)
    return failures


def check_store(store: DocumentStore) -> str:
    return store.append("test", {"timestamp": utc_timestamp(), "message": "Connection Check"})


@click.group()
@click.option("--env-file", default=None, help="Alternative .env file to load")
@click.pass_context
def cli(ctx, env_file):
    """Proctoring portal operator commands."""
    settings = load_settings(env_file)
    configure_logging(settings.log_level)
    ctx.obj = settings


@cli.command("seed-demo-users")
@click.pass_obj
def seed_demo_users_command(settings):
    """Create the demo student and teacher accounts."""
    provider = IdentityProvider.from_service_account(settings.service_account)
    store = DocumentStore.connect(settings.database_url, settings.database_name)
    failures = seed_demo_users(provider, store)
    click.echo("Demo users setup complete." if not failures else f"{failures} demo user(s) failed.")
    if failures:
        raise SystemExit(1)


@cli.command("check-store")
@click.pass_obj
def check_store_command(settings):
    """Write a marker document to the ``test`` collection."""
    store = DocumentStore.connect(settings.database_url, settings.database_name)
    click.echo(f"Attempting to write to {settings.database_name}...")
    try:
        doc_id = check_store(store)
    except PortalError as exc:
        click.echo(f"Write failed: {exc.message}", err=True)
        raise SystemExit(1)
    click.echo(f"Success! Document written with ID: {doc_id}")


if __name__ == "__main__":
    cli()
