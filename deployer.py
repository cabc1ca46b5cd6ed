import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

import config
from deploy_log import append_entry
from exceptions import LoggingError, PullExecutionError, UnknownRepositoryError
from ssh_agent import AgentSession, agent_session
from utils import run_command

logger = logging.getLogger(__name__)


@dataclass
class PullResult:
    repository_name: str
    deploy_path: str
    exit_code: int
    lines: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        return "\n".join(self.lines)

    def raise_for_status(self):
        if not self.succeeded:
            raise PullExecutionError(self)


def resolve_deploy_path(repository_name: str, repo_map: Optional[Mapping[str, str]] = None) -> str:
    repo_map = config.REPO_DEPLOY_MAP if repo_map is None else repo_map
    try:
        return repo_map[repository_name]
    except KeyError:
        raise UnknownRepositoryError(repository_name) from None


def run_pull(repository_name: str, deploy_path: str, session: Optional[AgentSession] = None,
             command: Optional[List[str]] = None) -> PullResult:
    """
    Run the pull command inside deploy_path and capture its combined output.

    A directory or binary that cannot be used becomes a one-line failed result.
    """
    command = command or config.GIT_PULL_COMMAND
    env = session.env() if session else None
    logger.info(f"Running command: {' '.join(command)} in {deploy_path}")

    try:
        result = run_command(command, cwd=deploy_path, env=env)
    except OSError as e:
        logger.error(f"Could not run {command[0]} in {deploy_path}: {e}")
        return PullResult(
            repository_name=repository_name,
            deploy_path=deploy_path,
            exit_code=1,
            lines=[f"Could not run {' '.join(command)} in {deploy_path}: {e.strerror or e}"]
        )

    logger.info(f"Pull output for {repository_name}:\n{result.output}")
    return PullResult(
        repository_name=repository_name,
        deploy_path=deploy_path,
        exit_code=result.exit_code,
        lines=result.lines
    )


def _notify(notifier, result: PullResult, status: str) -> None:
    if not notifier:
        return
    try:
        notifier.notify_deploy_event(result.repository_name, result.deploy_path, status, result.output)
    except Exception as e:
        logger.error(f"Deploy notification for {result.repository_name} failed: {e}", exc_info=True)


def deploy_repository(repository_name: str, notifier=None) -> PullResult:
    """
    Record the delivery, resolve the deploy directory and pull into it.

    Raises UnknownRepositoryError when the repository is not mapped; nothing
    after the deploy log write runs in that case. A failed pull is logged and
    reported, and its output is still returned.
    """
    try:
        append_entry(repository_name)
    except LoggingError as e:
        logger.warning(str(e))

    try:
        deploy_path = resolve_deploy_path(repository_name)
    except UnknownRepositoryError as e:
        logger.warning(str(e))
        raise

    with agent_session() as session:
        result = run_pull(repository_name, deploy_path, session)

    try:
        result.raise_for_status()
    except PullExecutionError as e:
        logger.error(f"{e}\n{result.output}")
        _notify(notifier, result, "failed")
        return result

    logger.info(f"Pull completed for {repository_name} in {deploy_path}")
    _notify(notifier, result, "successful")
    return result
