import base64

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Attachment, Disposition, FileContent, FileName, FileType, Mail
from flask import current_app


def mail_enabled():
    return bool(current_app.config.get("SENDGRID_API_KEY"))


def send_notification(to_email, subject, html, ics=None):
    sg = SendGridAPIClient(api_key=current_app.config["SENDGRID_API_KEY"])
    message = Mail(from_email=(current_app.config["MAIL_FROM"], current_app.config["MAIL_FROM_NAME"]),
                   to_emails=to_email,
                   subject=subject,
                   html_content=html)
    if ics:
        message.attachment = Attachment(
            FileContent(base64.b64encode(ics.encode("utf-8")).decode("ascii")),
            FileName("interview.ics"),
            FileType("text/calendar"),
            Disposition("attachment"),
        )
    resp = sg.send(message)
    return resp.status_code, getattr(resp, "headers", None)
