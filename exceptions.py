# exceptions.py


class DeployError(Exception):
    """Base class for everything that can go wrong while handling a deploy."""


class MalformedPayloadError(DeployError):
    """The request body did not carry a usable repository.name."""


class UnknownRepositoryError(DeployError):
    def __init__(self, repository_name: str):
        self.repository_name = repository_name
        super().__init__(f"Unhandled repo: {repository_name}")


class PullExecutionError(DeployError):
    """The pull command exited non-zero. The captured output is kept on the result."""

    def __init__(self, result):
        self.result = result
        super().__init__(
            f"Pull in '{result.deploy_path}' exited with status {result.exit_code}"
        )


class LoggingError(DeployError):
    """The deploy log could not be appended to."""


class AgentError(DeployError):
    """ssh-agent could not be started, parsed or stopped."""
