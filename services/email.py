"""
Outbound email through named, interchangeable providers
"""
import time
import asyncio
import aiohttp
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Iterable
from core.config import settings as default_settings, Settings
from core.logger import setup_logger
from core.registry import ProviderRegistry

logger = setup_logger(__name__)

@dataclass
class EmailData:
    to: str
    subject: str
    body: str
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)

@dataclass
class EmailResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success}
        if self.message_id:
            result["messageId"] = self.message_id
        if self.error:
            result["error"] = self.error
        return result

class EmailProvider(ABC):
    """Base class for email backends"""

    name: str = ""

    @abstractmethod
    async def send_email(self, data: EmailData) -> EmailResult:
        pass

class DemoEmailProvider(EmailProvider):
    """Logs the message instead of delivering it"""

    name = "demo"

    async def send_email(self, data: EmailData) -> EmailResult:
        logger.info(f"[demo] Email to {data.to} | subject: {data.subject!r} | {len(data.body)} chars")
        return EmailResult(success=True, message_id=f"demo_{int(time.time() * 1000)}")

class GmailProvider(EmailProvider):
    """Gmail API provider; requires an OAuth access token"""

    name = "gmail"

    def __init__(self, access_token: str = ""):
        self.access_token = access_token

    async def send_email(self, data: EmailData) -> EmailResult:
        if not self.access_token:
            return EmailResult(
                success=False,
                error="Gmail access token not configured. Please set up OAuth authentication."
            )
        # TODO: deliver through users.messages.send once the OAuth flow is wired up
        logger.info(f"Email would be sent via Gmail API to {data.to}")
        return EmailResult(success=True, message_id=f"gmail_{int(time.time() * 1000)}")

class SendGridProvider(EmailProvider):
    name = "sendgrid"
    api_url = "https://api.sendgrid.com/v3/mail/send"

    def __init__(self, api_key: str = "", from_email: str = "", timeout: int = 15):
        self.api_key = api_key
        self.from_email = from_email
        self.timeout = timeout

    def _payload(self, data: EmailData) -> Dict[str, Any]:
        personalization: Dict[str, Any] = {
            "to": [{"email": data.to}],
            "subject": data.subject,
        }
        if data.cc:
            personalization["cc"] = [{"email": email} for email in data.cc]
        if data.bcc:
            personalization["bcc"] = [{"email": email} for email in data.bcc]
        return {
            "personalizations": [personalization],
            "from": {"email": self.from_email},
            "content": [{"type": "text/plain", "value": data.body}],
        }

    async def send_email(self, data: EmailData) -> EmailResult:
        if not self.api_key:
            return EmailResult(success=False, error="SendGrid API key not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        async with aiohttp.ClientSession() as session:
            async with session.post(
                self.api_url,
                json=self._payload(data),
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                if 200 <= response.status < 300:
                    return EmailResult(success=True, message_id=response.headers.get("x-message-id"))
                error = await response.text()
                logger.error(f"SendGrid error {response.status}: {error[:200]}")
                return EmailResult(success=False, error=f"SendGrid error: {error}")

def default_email_providers(settings: Settings) -> List[EmailProvider]:
    return [
        DemoEmailProvider(),
        GmailProvider(settings.GMAIL_ACCESS_TOKEN),
        SendGridProvider(settings.SENDGRID_API_KEY, settings.FROM_EMAIL, settings.EMAIL_TIMEOUT),
    ]

class EmailService:
    """
    Sends email through exactly one named provider.

    There is no fallback chain: an unknown provider name raises
    ProviderNotFoundError for the caller to report.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        providers: Optional[Iterable[EmailProvider]] = None
    ):
        self.settings = settings or default_settings
        self.registry = ProviderRegistry("Email", default=self.settings.EMAIL_DEFAULT_PROVIDER)
        for provider in (providers if providers is not None else default_email_providers(self.settings)):
            self.registry.register(provider)
        logger.info(f"EmailService initialized (providers: {self.registry.names()})")

    async def send_email(self, data: EmailData, provider: Optional[str] = None) -> EmailResult:
        email_provider = self.registry.get(provider or self.registry.default)
        try:
            result = await email_provider.send_email(data)
        except asyncio.TimeoutError:
            logger.error(f"Email provider '{email_provider.name}' timed out")
            return EmailResult(success=False, error="Email provider timed out")
        except aiohttp.ClientError as e:
            logger.error(f"Email provider '{email_provider.name}' failed: {e}")
            return EmailResult(success=False, error=str(e))

        if result.success:
            logger.info(f"Email sent to {data.to} via {email_provider.name}")
        else:
            logger.warning(f"Email via {email_provider.name} failed: {result.error}")
        return result

    def get_available_providers(self) -> List[str]:
        return self.registry.names()
