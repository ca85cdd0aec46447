"""
Email templates for account verification and password reset
"""
from html import escape
from typing import Optional

_HTML_LAYOUT = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .button {{
            display: inline-block;
            padding: 12px 24px;
            background-color: #2563eb;
            color: white;
            text-decoration: none;
            border-radius: 5px;
            margin: 20px 0;
        }}
        .footer {{ margin-top: 40px; font-size: 12px; color: #666; }}
    </style>
</head>
<body>
    <div class="container">
        <h2>{heading}</h2>
        <p>Hi {name},</p>
        <p>{intro}</p>
        <a href="{url}" class="button">{button}</a>
        <p>Or copy and paste this link into your browser:</p>
        <p><a href="{url}">{url}</a></p>
        <div class="footer">
            <p>{ignore}</p>
            <p>This link will expire in {lifetime}.</p>
        </div>
    </div>
</body>
</html>
"""


class EmailTemplate:
    """Base class for email templates"""

    subject: str = ""
    heading: str = ""
    intro: str = ""
    button: str = ""
    ignore: str = ""
    lifetime: str = ""

    @classmethod
    def render_plain_text(cls, url: str, name: Optional[str] = None) -> str:
        """Render plain text version"""
        return "\n".join([
            cls.heading,
            "",
            f"Hi {name or 'there'},",
            "",
            cls.intro,
            "",
            url,
            "",
            cls.ignore,
            f"This link will expire in {cls.lifetime}.",
            "",
            "Classmate Hub",
        ])

    @classmethod
    def render_html(cls, url: str, name: Optional[str] = None) -> str:
        """Render HTML version"""
        return _HTML_LAYOUT.format(
            heading=cls.heading,
            name=escape(name or "there"),
            intro=cls.intro,
            url=escape(url, quote=True),
            button=cls.button,
            ignore=cls.ignore,
            lifetime=cls.lifetime,
        )


class VerificationEmailTemplate(EmailTemplate):
    subject = "Verify your email address"
    heading = "Verify Your Email Address"
    intro = "Thanks for joining Classmate Hub! Please confirm your email address to activate your account."
    button = "Verify Email Address"
    ignore = "If you didn't create an account, you can safely ignore this email."
    lifetime = "24 hours"


class PasswordResetEmailTemplate(EmailTemplate):
    subject = "Reset your password"
    heading = "Reset Your Password"
    intro = "We received a request to reset the password for your Classmate Hub account."
    button = "Reset Password"
    ignore = "If you didn't request a password reset, you can safely ignore this email. Your password will not change."
    lifetime = "1 hour"
