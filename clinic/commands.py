import click
from flask.cli import with_appcontext
from clinic.extensions import db
from clinic.models.user_models import User, ROLES

@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create all clinic tables."""
    db.create_all()
    click.echo("Database initialized successfully!")

@click.command('create-user')
@click.argument('username')
@click.option('--role', type=click.Choice(ROLES), default='admin', show_default=True)
@click.password_option()
@with_appcontext
def create_user_command(username, role, password):
    """Create a login account, e.g. the first admin."""
    if User.query.filter_by(username=username).first():
        raise click.ClickException(f"User '{username}' already exists")

    user = User(username=username, role=role)
    try:
        user.set_password(password)
    except ValueError as e:
        raise click.ClickException(str(e))

    db.session.add(user)
    db.session.commit()
    click.echo(f"Created {role} user '{username}' ({user.id})")

def register_commands(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(create_user_command)
