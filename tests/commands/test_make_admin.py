import runclub.commands.make_admin as make_admin
from runclub.models import User


def test_promotes_existing_user(make_user, capsys):
    user = make_user(email="coach@example.com")

    assert make_admin.run("Coach@Example.com") == 0

    assert User.get_by_id(user.id).is_admin
    assert "Updated coach@example.com to role: admin" in capsys.readouterr().out


def test_unknown_email(capsys):
    assert make_admin.run("ghost@example.com") == 1
    assert "No user" in capsys.readouterr().out
