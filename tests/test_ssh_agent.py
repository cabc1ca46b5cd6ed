from unittest.mock import MagicMock

import pytest

import ssh_agent
from exceptions import AgentError
from ssh_agent import AgentSession, add_keys, agent_session, parse_agent_output, start_agent, stop_agent
from utils import CommandResult

pytestmark = pytest.mark.unit

AGENT_OUTPUT = [
    "SSH_AUTH_SOCK=/tmp/ssh-abc123/agent.4241; export SSH_AUTH_SOCK;",
    "SSH_AGENT_PID=4242; export SSH_AGENT_PID;",
    "echo Agent pid 4242;",
]


def test_parse_agent_output():
    session = parse_agent_output("\n".join(AGENT_OUTPUT))
    assert session == AgentSession(pid=4242, auth_sock="/tmp/ssh-abc123/agent.4241")
    assert session.env() == {"SSH_AUTH_SOCK": "/tmp/ssh-abc123/agent.4241", "SSH_AGENT_PID": "4242"}


def test_parse_rejects_unexpected_output():
    with pytest.raises(AgentError):
        parse_agent_output("Could not open a connection to your authentication agent.")


def test_start_agent_runs_agent_in_shell_output_mode(monkeypatch):
    run = MagicMock(return_value=CommandResult(args=["ssh-agent", "-s"], exit_code=0, lines=AGENT_OUTPUT))
    monkeypatch.setattr(ssh_agent, "run_command", run)

    session = start_agent()

    run.assert_called_once_with(["ssh-agent", "-s"])
    assert session.pid == 4242


def test_start_agent_failure_raises_agent_error(monkeypatch):
    monkeypatch.setattr(ssh_agent, "run_command", MagicMock(side_effect=FileNotFoundError("ssh-agent")))
    with pytest.raises(AgentError):
        start_agent()

    monkeypatch.setattr(ssh_agent, "run_command", MagicMock(
        return_value=CommandResult(args=["ssh-agent", "-s"], exit_code=1, lines=["boom"])
    ))
    with pytest.raises(AgentError):
        start_agent()


def test_stop_agent_passes_session_explicitly(monkeypatch, agent_session_handle):
    run = MagicMock(return_value=CommandResult(args=["ssh-agent", "-k"], exit_code=0))
    monkeypatch.setattr(ssh_agent, "run_command", run)

    stop_agent(agent_session_handle)

    run.assert_called_once_with(["ssh-agent", "-k"], env=agent_session_handle.env())


def test_stop_agent_failure_raises_agent_error(monkeypatch, agent_session_handle):
    monkeypatch.setattr(ssh_agent, "run_command", MagicMock(
        return_value=CommandResult(args=["ssh-agent", "-k"], exit_code=1, lines=["no agent"])
    ))
    with pytest.raises(AgentError):
        stop_agent(agent_session_handle)


def test_add_keys_skips_failures(monkeypatch, agent_session_handle):
    run = MagicMock(side_effect=[
        CommandResult(args=["ssh-add", "/keys/missing"], exit_code=1, lines=["No such file"]),
        CommandResult(args=["ssh-add", "/keys/deploy"], exit_code=0, lines=["Identity added"]),
    ])
    monkeypatch.setattr(ssh_agent, "run_command", run)

    assert add_keys(agent_session_handle, ["/keys/missing", "/keys/deploy"]) == 1
    run.assert_called_with(["ssh-add", "/keys/deploy"], env=agent_session_handle.env())


def test_session_is_stopped_once_on_success(fake_agent):
    with agent_session(enabled=True, keys=[]) as session:
        assert session is fake_agent.session

    fake_agent.start.assert_called_once()
    fake_agent.stop.assert_called_once_with(fake_agent.session)


def test_session_is_stopped_once_when_body_raises(fake_agent):
    with pytest.raises(RuntimeError):
        with agent_session(enabled=True, keys=[]):
            raise RuntimeError("pull blew up")

    fake_agent.stop.assert_called_once_with(fake_agent.session)


def test_start_failure_yields_no_session(fake_agent):
    fake_agent.start.side_effect = AgentError("no ssh-agent")

    with agent_session(enabled=True, keys=[]) as session:
        assert session is None

    fake_agent.stop.assert_not_called()


def test_stop_failure_is_not_raised(fake_agent):
    fake_agent.stop.side_effect = AgentError("already gone")

    with agent_session(enabled=True, keys=[]) as session:
        assert session is not None

    fake_agent.stop.assert_called_once()


def test_disabled_agent_is_never_started(fake_agent):
    with agent_session(enabled=False) as session:
        assert session is None

    fake_agent.start.assert_not_called()
    fake_agent.stop.assert_not_called()


def test_configured_keys_are_loaded(fake_agent, monkeypatch):
    add = MagicMock(return_value=1)
    monkeypatch.setattr(ssh_agent, "add_keys", add)

    with agent_session(enabled=True, keys=["/keys/deploy"]):
        pass

    add.assert_called_once_with(fake_agent.session, ["/keys/deploy"])


def test_unparseable_agent_output_kills_started_agent(monkeypatch):
    monkeypatch.setattr(ssh_agent, "run_command", MagicMock(
        return_value=CommandResult(args=["ssh-agent", "-s"], exit_code=0, lines=["SSH_AGENT_PID=4242; export SSH_AGENT_PID;"])
    ))
    kill = MagicMock()
    monkeypatch.setattr(ssh_agent.os, "kill", kill)

    with pytest.raises(AgentError):
        start_agent()

    kill.assert_called_once_with(4242, ssh_agent.signal.SIGTERM)


def test_unparseable_output_without_pid_kills_nothing(monkeypatch):
    monkeypatch.setattr(ssh_agent, "run_command", MagicMock(
        return_value=CommandResult(args=["ssh-agent", "-s"], exit_code=0, lines=["garbage"])
    ))
    kill = MagicMock()
    monkeypatch.setattr(ssh_agent.os, "kill", kill)

    with pytest.raises(AgentError):
        start_agent()

    kill.assert_not_called()
