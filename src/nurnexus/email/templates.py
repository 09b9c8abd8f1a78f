"""
Email templates for the donation app.

Inline CSS only, so the markup survives webmail clients.
Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from html import escape

APP_NAME = "Donation App"

# Color constants
BG_PAGE = "#F5F7F5"
BG_CARD = "#FFFFFF"
GREEN = "#4CAF50"
LINK = "#1A73E8"
TEXT_PRIMARY = "#333333"
TEXT_SECONDARY = "#666666"
TEXT_MUTED = "#999999"
BORDER = "#E0E0E0"


def _base_layout(content: str) -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{APP_NAME}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {BG_PAGE}; font-family: Arial, Helvetica, sans-serif;">
    <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="100%" style="background-color: {BG_PAGE};">
        <tr>
            <td align="center" style="padding: 32px 16px;">
                <table role="presentation" cellspacing="0" cellpadding="0" border="0" width="600" style="max-width: 600px; width: 100%; background-color: {BG_CARD}; border: 1px solid {BORDER}; border-radius: 5px;">
                    <tr>
                        <td style="padding: 24px;">
                            {content}
                            <hr style="border: none; border-top: 1px solid {BORDER}; margin: 30px 0;">
                            <p style="font-size: 12px; color: {TEXT_MUTED}; text-align: center; margin: 0;">
                                If you didn't request this email, you can safely ignore it.
                            </p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>"""


def _heading(title: str) -> str:
    return f"""\
<div style="text-align: center; margin-bottom: 20px;">
    <h1 style="color: {GREEN}; margin: 0;">{title}</h1>
</div>"""


def _paragraph(text: str) -> str:
    return f'<p style="font-size: 16px; line-height: 1.5; color: {TEXT_PRIMARY};">{text}</p>'


def _button(url: str, label: str) -> str:
    """Render a green CTA button followed by the raw link."""
    return f"""\
<div style="text-align: center; margin: 30px 0;">
    <a href="{url}" style="background-color: {GREEN}; color: #FFFFFF; padding: 12px 30px; text-decoration: none; border-radius: 4px; font-weight: bold; display: inline-block;">{label}</a>
</div>
<p style="font-size: 14px; color: {TEXT_SECONDARY};">If the button above doesn't work, copy and paste the following link into your browser:</p>
<p style="font-size: 14px; color: {LINK}; word-break: break-all;">{url}</p>"""


def _expiry_note(window: str) -> str:
    return f'<p style="font-size: 14px; color: {TEXT_SECONDARY}; margin-top: 30px;">This link will expire in {window}.</p>'


def _hours(hours: int) -> str:
    return "1 hour" if hours == 1 else f"{hours} hours"


def welcome_email(name: str | None, verify_url: str, expires_hours: int = 24) -> tuple[str, str, str]:
    """
    Verification email sent right after registration.

    Returns:
        (subject, html_body, text_body)
    """
    greeting_name = escape(name) if name else "there"
    window = _hours(expires_hours)
    subject = "Verify your email address"
    content = "\n".join([
        _heading("Email Verification"),
        _paragraph(f"Hello {greeting_name},"),
        _paragraph(
            f"Thank you for registering with the {APP_NAME}! "
            "To complete your registration, please verify your email address."
        ),
        _button(verify_url, "Verify Email"),
        _expiry_note(window),
    ])
    text_body = (
        f"Hello {name or 'there'},\n\n"
        f"Thank you for registering with the {APP_NAME}! Please verify your email address "
        f"by visiting this link:\n\n{verify_url}\n\n"
        f"This link will expire in {window}.\n\n"
        f"If you didn't create an account, you can safely ignore this email."
    )
    return subject, _base_layout(content), text_body


def verify_email_reminder(verify_url: str, expires_hours: int = 24) -> tuple[str, str, str]:
    """
    Sent when an unverified account tries to log in.

    Returns:
        (subject, html_body, text_body)
    """
    window = _hours(expires_hours)
    subject = "Verify your email address"
    content = "\n".join([
        _heading("Email Verification"),
        _paragraph(f"Please verify your email address to log in to the {APP_NAME}."),
        _button(verify_url, "Verify Email"),
        _expiry_note(window),
    ])
    text_body = (
        f"Please verify your email address to log in to the {APP_NAME}:\n\n{verify_url}\n\n"
        f"This link will expire in {window}."
    )
    return subject, _base_layout(content), text_body


def verify_email(verify_url: str, expires_hours: int = 24) -> tuple[str, str, str]:
    """
    Verification email requested explicitly (resend).

    Returns:
        (subject, html_body, text_body)
    """
    window = _hours(expires_hours)
    subject = "Verify your email address"
    content = "\n".join([
        _heading("Verify Your Email Address"),
        _paragraph("Hello,"),
        _paragraph(
            "We received a request to resend your verification email. "
            "Please verify your email address by clicking the button below:"
        ),
        _button(verify_url, "Verify Email Address"),
        _expiry_note(window),
    ])
    text_body = (
        f"Hello,\n\n"
        f"We received a request to resend your verification email. "
        f"Verify your email address here:\n\n{verify_url}\n\n"
        f"This link will expire in {window}.\n\n"
        f"If you didn't create an account, you can safely ignore this email."
    )
    return subject, _base_layout(content), text_body


def password_reset(reset_url: str, expires_minutes: int = 60) -> tuple[str, str, str]:
    """
    Password reset email.

    Returns:
        (subject, html_body, text_body)
    """
    window = _hours(expires_minutes // 60) if expires_minutes % 60 == 0 else f"{expires_minutes} minutes"
    subject = "Password Reset Request"
    content = "\n".join([
        _heading("Password Reset"),
        _paragraph("You requested a password reset. Please click the button below to reset your password:"),
        _button(reset_url, "Reset Password"),
        _expiry_note(window),
    ])
    text_body = (
        f"You requested a password reset.\n\n"
        f"Set a new password here:\n\n{reset_url}\n\n"
        f"This link will expire in {window}.\n\n"
        f"If you didn't request a password reset, your password will remain unchanged."
    )
    return subject, _base_layout(content), text_body
