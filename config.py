# config.py

import os
import yaml
import logging
from types import MappingProxyType

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

CONFIG_PATH = os.getenv("CONFIG_PATH", "config.yaml")


def load_config(path: str = CONFIG_PATH) -> dict:
    """
    Load configuration from the YAML file specified by CONFIG_PATH environment variable or the default path.

    Returns:
        dict: Parsed configuration dictionary.
    """
    if not os.path.exists(path):
        logger.error(f"Configuration file '{path}' not found.")
        raise FileNotFoundError(f"Configuration file '{path}' not found.")

    try:
        with open(path, 'r') as f:
            loaded = yaml.safe_load(f) or {}
            logger.info(f"Configuration loaded successfully from '{path}'.")
            return loaded
    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML file '{path}': {e}")
        raise


def build_repo_map(raw) -> MappingProxyType:
    """
    Validate the repo_deploy_map section and freeze it.

    Every key is a repository name and every value the absolute deploy
    directory the pull runs in.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError("'repo_deploy_map' must be a mapping of repository name to deploy path.")

    repo_map = {}
    for repo_name, deploy_path in raw.items():
        if not isinstance(deploy_path, str) or not deploy_path.strip():
            raise ValueError(f"Deploy path for repository '{repo_name}' must be a non-empty string.")
        if not os.path.isabs(deploy_path):
            logger.warning(f"Deploy path for '{repo_name}' is relative: {deploy_path}")
        repo_map[str(repo_name)] = deploy_path

    return MappingProxyType(repo_map)


def build_string_list(raw, setting: str, default=None) -> list:
    """
    Validate a setting that must be a YAML list of non-empty strings.

    A bare string is rejected so "git pull" is not taken for a list of characters.
    """
    if raw is None:
        return list(default or [])
    if not isinstance(raw, list):
        raise ValueError(f"'{setting}' must be a list of strings, got {type(raw).__name__}.")
    for item in raw:
        if not isinstance(item, str) or not item.strip():
            raise ValueError(f"Every entry of '{setting}' must be a non-empty string: {item!r}")
    return list(raw)


# Load the configuration file
config = load_config()

DEBUG_MODE = bool(config.get("debug", False))
WEBHOOK_SECRET = os.getenv("WEBHOOK_SECRET", config.get("webhook_secret") or "")
DEPLOY_API_KEY = os.getenv("DEPLOY_API_KEY", config.get("deploy_api_key") or "")

REPO_DEPLOY_MAP = build_repo_map(config.get("repo_deploy_map"))

# Deploy log
DEPLOY_LOG = config.get("deploy_log") or {}
DEPLOY_LOG_PATH = DEPLOY_LOG.get("path", "deploy-log.txt")
# 12-hour clock without an AM/PM marker, as the audit log has always been written.
DEPLOY_LOG_TIMESTAMP_FORMAT = DEPLOY_LOG.get("timestamp_format", "%Y-%m-%d %I:%M:%S")

# Git
GIT_SETTINGS = config.get("git") or {}
GIT_PULL_COMMAND = build_string_list(GIT_SETTINGS.get("pull_command"), "git.pull_command", ["git", "pull"])
if not GIT_PULL_COMMAND:
    raise ValueError("'git.pull_command' must not be empty.")

# ssh-agent session wrapped around each pull
SSH_AGENT_SETTINGS = config.get("ssh_agent") or {}
SSH_AGENT_ENABLED = bool(SSH_AGENT_SETTINGS.get("enabled", True))
SSH_AGENT_PATH = SSH_AGENT_SETTINGS.get("agent_path", "ssh-agent")
SSH_ADD_PATH = SSH_AGENT_SETTINGS.get("add_path", "ssh-add")
SSH_KEYS = build_string_list(SSH_AGENT_SETTINGS.get("keys"), "ssh_agent.keys")

# Notification settings
NOTIFICATIONS = config.get("notifications") or {}
SLACK_WEBHOOK_URL = os.getenv("SLACK_WEBHOOK_URL", NOTIFICATIONS.get("slack_webhook_url") or "")
EMAIL_SETTINGS = dict(NOTIFICATIONS.get("email") or {})

# Override sensitive settings with environment variables (e.g., for CI/CD)
if EMAIL_SETTINGS:
    EMAIL_SETTINGS['password'] = os.getenv("EMAIL_PASSWORD", EMAIL_SETTINGS.get('password'))
    EMAIL_SETTINGS['username'] = os.getenv("EMAIL_USERNAME", EMAIL_SETTINGS.get('username'))
    EMAIL_SETTINGS['smtp_server'] = os.getenv("SMTP_SERVER", EMAIL_SETTINGS.get('smtp_server'))
    EMAIL_SETTINGS['smtp_port'] = int(os.getenv("SMTP_PORT", EMAIL_SETTINGS.get('smtp_port', 587)))
    EMAIL_SETTINGS['use_tls'] = os.getenv("EMAIL_USE_TLS", str(EMAIL_SETTINGS.get('use_tls', True))).lower() == "true"

# Server
SERVER_SETTINGS = config.get("server") or {}
SERVER_HOST = os.getenv("HOST", SERVER_SETTINGS.get("host", "0.0.0.0"))
SERVER_PORT = int(os.getenv("PORT", SERVER_SETTINGS.get("port", 8000)))

# Log summary of key settings (without sensitive details)
logger.info(f"Repositories configured: {', '.join(REPO_DEPLOY_MAP) or 'none'}")
logger.info(f"Deploy log: {DEPLOY_LOG_PATH}")
logger.info(f"Pull command: {' '.join(GIT_PULL_COMMAND)}")
logger.info(f"ssh-agent session: {'enabled' if SSH_AGENT_ENABLED else 'disabled'}")
if not WEBHOOK_SECRET:
    logger.warning("Webhook secret is not set. Signature verification is disabled.")
