"""
Shared fixtures for the PullHook test suite.

The application modules read their configuration at import time, so a test
config file is written and CONFIG_PATH is pointed at it before anything from
the project is imported.
"""

import os
import tempfile
from unittest.mock import MagicMock

import pytest

_CONFIG_DIR = tempfile.mkdtemp(prefix="pullhook-tests-")
_CONFIG_FILE = os.path.join(_CONFIG_DIR, "config.yaml")

with open(_CONFIG_FILE, "w") as f:
    f.write(
        """
debug: false
webhook_secret: ""
deploy_api_key: "test-deploy-key"
repo_deploy_map:
  dragon-fox.com: /var/www/dragon-fox.com
deploy_log:
  path: {log_path}
git:
  pull_command: ["git", "pull"]
ssh_agent:
  enabled: true
  agent_path: ssh-agent
  add_path: ssh-add
  keys: []
notifications: {{}}
""".format(log_path=os.path.join(_CONFIG_DIR, "deploy-log.txt"))
    )

os.environ["CONFIG_PATH"] = _CONFIG_FILE
os.environ["LOG_DB_PATH"] = ""
for _name in ("WEBHOOK_SECRET", "DEPLOY_API_KEY", "SLACK_WEBHOOK_URL"):
    os.environ.pop(_name, None)

import config as app_config  # noqa: E402
from ssh_agent import AgentSession  # noqa: E402
from utils import CommandResult  # noqa: E402


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "api: API endpoint tests")


@pytest.fixture(autouse=True)
def deploy_log_path(tmp_path, monkeypatch):
    """Every test writes its deploy log into its own temporary directory."""
    path = tmp_path / "deploy-log.txt"
    monkeypatch.setattr(app_config, "DEPLOY_LOG_PATH", str(path))
    return path


@pytest.fixture
def agent_session_handle():
    return AgentSession(pid=4242, auth_sock="/tmp/ssh-test/agent.4241")


@pytest.fixture
def fake_agent(monkeypatch, agent_session_handle):
    """Replace ssh-agent start/stop so no real agent is spawned."""
    import ssh_agent

    start = MagicMock(return_value=agent_session_handle)
    stop = MagicMock()
    monkeypatch.setattr(ssh_agent, "start_agent", start)
    monkeypatch.setattr(ssh_agent, "stop_agent", stop)
    return MagicMock(start=start, stop=stop, session=agent_session_handle)


@pytest.fixture
def fake_pull(monkeypatch):
    """Replace the pull subprocess. Tests adjust return_value / side_effect as needed."""
    import deployer

    run = MagicMock(return_value=CommandResult(
        args=["git", "pull"],
        exit_code=0,
        lines=["Updating 1a2b3c4..5d6e7f8", "Fast-forward", " index.html | 2 +-"]
    ))
    monkeypatch.setattr(deployer, "run_command", run)
    return run


@pytest.fixture
def client(fake_agent, fake_pull):
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)

