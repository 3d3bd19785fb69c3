from clinic.models.user_models import User
from tests.conftest import PASSWORD


def test_create_user_command(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['create-user', 'boss', '--role', 'admin', '--password', PASSWORD])

    assert result.exit_code == 0, result.output
    assert "Created admin user 'boss'" in result.output
    user = User.query.filter_by(username='boss').one()
    assert user.role == 'admin'
    assert user.check_password(PASSWORD)


def test_create_user_command_rejects_duplicates_and_weak_passwords(app):
    runner = app.test_cli_runner()
    runner.invoke(args=['create-user', 'boss', '--password', PASSWORD])

    result = runner.invoke(args=['create-user', 'boss', '--password', PASSWORD])
    assert result.exit_code != 0
    assert 'already exists' in result.output

    result = runner.invoke(args=['create-user', 'newbie', '--password', 'weak'])
    assert result.exit_code != 0
    assert 'complexity' in result.output


def test_init_db_command(app):
    result = app.test_cli_runner().invoke(args=['init-db'])

    assert result.exit_code == 0
    assert 'initialized' in result.output
