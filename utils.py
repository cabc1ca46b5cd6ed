# utils.py

import hmac
import hashlib
import os
import subprocess
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    args: List[str]
    exit_code: int
    lines: List[str] = field(default_factory=list)

    @property
    def output(self) -> str:
        return "\n".join(self.lines)


def verify_signature(request_body: bytes, signature: Optional[str], secret: str) -> bool:
    if not secret:
        logger.debug("Webhook secret is disabled. Skipping signature verification.")
        return True

    if signature is None:
        logger.warning("No signature provided.")
        return False

    try:
        sha_name, signature = signature.split('=', 1)
    except ValueError:
        logger.warning("Invalid signature format.")
        return False

    if sha_name != 'sha256':
        logger.warning(f"Unsupported signature type: {sha_name}")
        return False

    mac = hmac.new(secret.encode(), msg=request_body, digestmod=hashlib.sha256)
    is_valid = hmac.compare_digest(mac.hexdigest(), signature)
    if is_valid:
        logger.debug("Webhook signature verified successfully.")
    else:
        logger.warning("Webhook signature verification failed.")
    return is_valid


def run_command(args: Sequence[str], cwd: Optional[str] = None,
                env: Optional[Dict[str, str]] = None) -> CommandResult:
    """
    Run a command without a shell and capture stdout and stderr as one ordered stream.

    A non-zero exit status is reported in the result, not raised. OSError
    (missing binary, missing working directory) propagates to the caller.
    """
    args = [str(a) for a in args]
    command = " ".join(args)
    logger.debug(f"Executing command: {command} in {cwd or os.getcwd()}")

    child_env = None
    if env:
        child_env = os.environ.copy()
        child_env.update(env)

    completed = subprocess.run(
        args,
        cwd=cwd,
        env=child_env,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        errors="replace"
    )
    lines = completed.stdout.splitlines()

    if lines:
        logger.debug(f"Command output:\n{completed.stdout.rstrip()}")
    if completed.returncode != 0:
        logger.debug(f"Command '{command}' exited with status {completed.returncode}")
    else:
        logger.debug(f"Command executed successfully: {command}")

    return CommandResult(args=args, exit_code=completed.returncode, lines=lines)
