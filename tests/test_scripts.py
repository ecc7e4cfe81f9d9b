import json

import bcrypt

from sso_auth.scripts.hash_password import main


def test_hash_password_json(capsys):
    main(["--user", "alice", "--password", "wonderland", "--rounds", "4", "--format", "json"])
    users = json.loads(capsys.readouterr().out)
    assert list(users) == ["alice"]
    assert bcrypt.checkpw(b"wonderland", users["alice"].encode())


def test_hash_password_env(capsys):
    main(["-u", "bob", "-p", "builder", "-r", "4", "-f", "env"])
    out = capsys.readouterr().out.strip()
    assert out.startswith("SSO_AUTH_ACCEPTED_USERS='")
    users = json.loads(out[len("SSO_AUTH_ACCEPTED_USERS='"):-1])
    assert bcrypt.checkpw(b"builder", users["bob"].encode())
