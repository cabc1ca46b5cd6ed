# ssh_agent.py
#
# Short-lived ssh-agent around a single pull. The session handle is passed
# explicitly to the pull and to teardown; this process's own environment is
# never modified.

import logging
import os
import re
import signal
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Sequence

import config
from exceptions import AgentError
from utils import run_command

logger = logging.getLogger(__name__)

_ASSIGNMENT_RE = re.compile(r"(SSH_AUTH_SOCK|SSH_AGENT_PID)=([^;\s]+);")
_PID_RE = re.compile(r"SSH_AGENT_PID=(\d+)")


@dataclass(frozen=True)
class AgentSession:
    pid: int
    auth_sock: str

    def env(self) -> Dict[str, str]:
        return {"SSH_AUTH_SOCK": self.auth_sock, "SSH_AGENT_PID": str(self.pid)}


def parse_agent_output(output: str) -> AgentSession:
    """
    Parse the Bourne-shell style output of `ssh-agent -s`:

        SSH_AUTH_SOCK=/tmp/ssh-XXXX/agent.123; export SSH_AUTH_SOCK;
        SSH_AGENT_PID=124; export SSH_AGENT_PID;
        echo Agent pid 124;
    """
    values = dict(_ASSIGNMENT_RE.findall(output))
    if "SSH_AUTH_SOCK" not in values or "SSH_AGENT_PID" not in values:
        raise AgentError(f"Unexpected ssh-agent output: {output.strip()!r}")
    try:
        pid = int(values["SSH_AGENT_PID"])
    except ValueError as e:
        raise AgentError(f"Invalid SSH_AGENT_PID: {values['SSH_AGENT_PID']!r}") from e
    return AgentSession(pid=pid, auth_sock=values["SSH_AUTH_SOCK"])


def start_agent(agent_path: Optional[str] = None) -> AgentSession:
    agent_path = agent_path or config.SSH_AGENT_PATH
    try:
        result = run_command([agent_path, "-s"])
    except OSError as e:
        raise AgentError(f"Could not start {agent_path}: {e}") from e
    if result.exit_code != 0:
        raise AgentError(f"{agent_path} exited with status {result.exit_code}: {result.output}")

    try:
        session = parse_agent_output(result.output)
    except AgentError:
        _kill_orphaned_agent(result.output)
        raise
    logger.info(f"Started ssh-agent (pid {session.pid})")
    return session


def _kill_orphaned_agent(output: str) -> None:
    """Terminate an agent that started but whose socket could not be read."""
    match = _PID_RE.search(output)
    if not match:
        return
    pid = int(match.group(1))
    try:
        os.kill(pid, signal.SIGTERM)
        logger.info(f"Terminated unusable ssh-agent (pid {pid})")
    except OSError as e:
        logger.warning(f"Could not terminate ssh-agent (pid {pid}): {e}")


def add_keys(session: AgentSession, keys: Sequence[str], add_path: Optional[str] = None) -> int:
    """Load each key file into the session. Returns how many were added."""
    add_path = add_path or config.SSH_ADD_PATH
    added = 0
    for key in keys:
        try:
            result = run_command([add_path, key], env=session.env())
        except OSError as e:
            logger.warning(f"Could not run {add_path} for '{key}': {e}")
            continue
        if result.exit_code != 0:
            logger.warning(f"{add_path} failed for '{key}': {result.output}")
            continue
        added += 1
    return added


def stop_agent(session: AgentSession, agent_path: Optional[str] = None) -> None:
    agent_path = agent_path or config.SSH_AGENT_PATH
    try:
        result = run_command([agent_path, "-k"], env=session.env())
    except OSError as e:
        raise AgentError(f"Could not stop ssh-agent (pid {session.pid}): {e}") from e
    if result.exit_code != 0:
        raise AgentError(
            f"ssh-agent (pid {session.pid}) teardown exited with status {result.exit_code}: {result.output}"
        )
    logger.info(f"Stopped ssh-agent (pid {session.pid})")


@contextmanager
def agent_session(enabled: Optional[bool] = None,
                  keys: Optional[Sequence[str]] = None) -> Iterator[Optional[AgentSession]]:
    """
    Yield a running AgentSession, or None when the agent is disabled or failed to start.

    A started agent is stopped exactly once when the block exits, however it exits.
    Start and stop failures are logged, never raised.
    """
    if enabled is None:
        enabled = config.SSH_AGENT_ENABLED
    if keys is None:
        keys = config.SSH_KEYS

    if not enabled:
        yield None
        return

    session = None
    try:
        session = start_agent()
    except AgentError as e:
        logger.warning(f"Continuing without ssh-agent: {e}")

    if session is None:
        yield None
        return

    try:
        if keys:
            add_keys(session, keys)
        yield session
    finally:
        try:
            stop_agent(session)
        except AgentError as e:
            logger.warning(str(e))
