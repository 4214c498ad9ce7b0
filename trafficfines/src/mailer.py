import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from logging import getLogger

from trafficfines.src.constants import (
    MAIL_OTP_SUBJECT,
    MAIL_SENDER,
    OTP_EXPIRY_TIME,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_TIMEOUT,
    SMTP_USE_TLS,
    SMTP_USERNAME,
)

logger = getLogger("uvicorn.error")

OTP_BODY = """Dear User,

You have requested to reset your password for the Traffic Violation Management System.

Your OTP (One-Time Password) is: {code}

This OTP is valid for {minutes} minutes.

If you did not request this, please ignore this email.

Regards,
Traffic Violation Management Team
"""


class SMTPMailer:
    """
    Deliver password reset codes by e-mail over SMTP.

    `send` never raises on transport failures, it logs them and reports False
    so the caller can decide whether to keep the code.
    """

    def __init__(
        self,
        host: str = SMTP_HOST,
        port: int = SMTP_PORT,
        username: str = SMTP_USERNAME,
        password: str = SMTP_PASSWORD,
        sender: str = MAIL_SENDER,
        useTLS: bool = SMTP_USE_TLS,
        timeOut: int = SMTP_TIMEOUT,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.useTLS = useTLS
        self.timeOut = timeOut

    def buildMessage(self, email: str, code: str) -> MIMEMultipart:
        message = MIMEMultipart()
        message["From"] = self.sender
        message["To"] = email
        message["Subject"] = MAIL_OTP_SUBJECT
        body = OTP_BODY.format(code=code, minutes=OTP_EXPIRY_TIME // 60)
        message.attach(MIMEText(body, "plain"))
        return message

    def send(self, email: str, code: str) -> bool:
        message = self.buildMessage(email, code)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeOut) as server:
                if self.useTLS:
                    server.starttls()
                if self.username:
                    server.login(self.username, self.password)
                server.sendmail(self.sender, [email], message.as_string())
            logger.info(f"Password reset OTP sent to {email}")
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send password reset OTP to {email}: {e}")
            return False
