import logging
import smtplib
from email.mime.text import MIMEText

from flask import current_app

logger = logging.getLogger(__name__)

def send_otp_email(to_email, otp):
    """Send the verification code. Returns False when delivery failed."""
    config = current_app.config
    subject = "Your OTP Code"
    body = f"Your confirmation code is: {otp}"

    if not config.get('MAIL_ENABLED'):
        logger.info(f"Mail disabled, verification code for {to_email}: {otp}")
        return True

    try:
        msg = MIMEText(body, 'plain')
        msg['From'] = config.get('MAIL_FROM') or config['EMAIL_USER']
        msg['To'] = to_email
        msg['Subject'] = subject

        with smtplib.SMTP(config['SMTP_SERVER'], config['SMTP_PORT']) as server:
            server.starttls()
            server.login(config['EMAIL_USER'], config['EMAIL_PASSWORD'])
            server.send_message(msg)

        logger.info(f"Verification code sent to {to_email}")
        return True

    except Exception as e:
        logger.error(f"Failed to send verification code to {to_email}: {e}")
        return False
