import click
from flask.cli import AppGroup

from .core.progress import MAX_STEPS_KEY, RUNNING_KEY, STEP_KEY, STEP_LABEL_KEY
from .core.registry import COMPLETED_KEY
from .extensions import db, setup
from .models import Role, User

setup_cli = AppGroup("setup", help="Manage setup wizards.")

DEFAULT_OPTIONS = {
    MAX_STEPS_KEY: 0,
    STEP_KEY: 0,
    STEP_LABEL_KEY: "",
    RUNNING_KEY: 0,
    COMPLETED_KEY: [],
}


@setup_cli.command("activate")
def activate():
    """Create tables and add the default options without overwriting existing ones."""
    db.create_all()
    store = setup.store()
    added = [name for name, value in DEFAULT_OPTIONS.items() if store.add(name, value)]
    click.echo(f"Added options: {', '.join(added)}" if added else "All options already present.")


@setup_cli.command("uninstall")
@click.argument("config_name")
def uninstall(config_name):
    """Remove the progress options and forget that CONFIG_NAME was completed."""
    store = setup.store()
    for name in DEFAULT_OPTIONS:
        if name != COMPLETED_KEY:
            store.delete(name)
    removed = setup.registry(store).remove(config_name)
    click.echo(f"Removed {config_name} from completed setups." if removed else f"{config_name} was not completed.")


@setup_cli.command("create-admin")
@click.argument("email")
@click.password_option()
def create_admin(email, password):
    email = email.lower().strip()
    if User.query.filter_by(email=email).first():
        raise click.ClickException(f"User {email} already exists.")
    user = User(email=email, role=Role.ADMIN)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    click.echo(f"Created admin {email}.")


@setup_cli.command("list")
def list_setups():
    registry = setup.registry()
    if not setup.configurations:
        click.echo("No setup configurations registered.")
        return
    for name, config in sorted(setup.configurations.items()):
        state = "completed" if registry.is_completed(name) else "pending"
        click.echo(f"{name}\t{config.last_step} steps\t{state}")
