import smtplib
import requests
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Optional

import config

logger = logging.getLogger(__name__)

NOTIFIED_STATUSES = ("successful", "failed")


class Notifications:
    def __init__(self, slack_webhook_url: str = "", email_settings: Optional[dict] = None):
        self.slack_webhook_url = slack_webhook_url or ""
        email_settings = email_settings or {}
        self.email_enabled = bool(email_settings)

        if self.email_enabled:
            self.smtp_server = email_settings.get('smtp_server')
            self.smtp_port = int(email_settings.get('smtp_port', 587))
            self.use_tls = email_settings.get('use_tls', True)
            self.username = email_settings.get('username')
            self.password = email_settings.get('password')
            self.sender = email_settings.get('sender_email', self.username)
            self.recipients = email_settings.get('recipients', [])

            logger.debug(
                f"Email Config - Server: {self.smtp_server}, Port: {self.smtp_port}, "
                f"Use TLS: {self.use_tls}, Sender: {self.sender}, Recipients: {self.recipients}"
            )

    @classmethod
    def from_config(cls):
        return cls(config.SLACK_WEBHOOK_URL, config.EMAIL_SETTINGS)

    def send_slack_message(self, message: str) -> bool:
        """
        Send a message to Slack via an incoming webhook URL.
        """
        if not self.slack_webhook_url:
            logger.debug("Slack webhook URL not configured. Skipping Slack notification.")
            return False
        try:
            response = requests.post(self.slack_webhook_url, json={"text": message}, timeout=10)
        except requests.RequestException as e:
            logger.error(f"Exception while sending Slack message: {e}")
            return False
        if response.status_code != 200:
            logger.error(f"Failed to send Slack message. Code: {response.status_code}, Resp: {response.text}")
            return False
        logger.info("Slack message sent successfully.")
        return True

    def send_email(self, subject: str, plain_body: str, html_body: Optional[str] = None) -> bool:
        if not self.email_enabled:
            logger.debug("Email notifications not configured. Skipping Email notification.")
            return False

        if not all([self.smtp_server, self.username, self.password, self.recipients]):
            logger.error("Email configuration is incomplete. Check config.yaml.")
            return False

        msg = MIMEMultipart('alternative')
        msg['From'] = self.sender
        msg['To'] = ", ".join(self.recipients)
        msg['Subject'] = subject
        msg.attach(MIMEText(plain_body, 'plain'))
        if html_body:
            msg.attach(MIMEText(html_body, 'html'))

        try:
            if self.smtp_port == 465:
                server = smtplib.SMTP_SSL(self.smtp_server, self.smtp_port, timeout=10)
            else:
                server = smtplib.SMTP(self.smtp_server, self.smtp_port, timeout=10)
                server.ehlo()
                if self.use_tls:
                    server.starttls()
                    server.ehlo()

            with server:
                server.login(self.username, self.password)
                server.send_message(msg)
            logger.info(f"Email sent successfully to {self.recipients} with subject '{subject}'.")
            return True
        except smtplib.SMTPAuthenticationError as e:
            logger.error(f"SMTP Authentication Error: {e}")
        except smtplib.SMTPException as e:
            logger.error(f"SMTP Error: {e}")
        except OSError as e:
            logger.error(f"Could not reach SMTP server {self.smtp_server}:{self.smtp_port}: {e}")
        return False

    def notify_deploy_event(self, repo: str, deploy_path: str, status: str, details: Optional[str] = ""):
        """
        Notify about a pull (Slack + Email), only for successful or failed events.
        """
        if status not in NOTIFIED_STATUSES:
            return

        message = (
            f"🚀 Deploy Event\n"
            f"Repository: {repo}\n"
            f"Directory: {deploy_path}\n"
            f"Status: {status.capitalize()}\n"
            f"Details: {details}"
        )
        self.send_slack_message(message)

        subject = f"Deploy Event: {status.capitalize()} on {repo}"
        html_message = f"""
        <html>
          <body>
            <h2>Deploy Event - {status.capitalize()}</h2>
            <table border="1" style="border-collapse: collapse;">
              <tr><th>Repository</th><td>{escape(repo)}</td></tr>
              <tr><th>Directory</th><td>{escape(deploy_path)}</td></tr>
              <tr><th>Status</th><td>{status.capitalize()}</td></tr>
              <tr><th>Details</th><td><pre>{escape(details or "")}</pre></td></tr>
            </table>
          </body>
        </html>
        """
        self.send_email(subject, message, html_message)
