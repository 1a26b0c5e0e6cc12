import html
import logging
from typing import Dict, Optional

from swophere.core.config import settings
from swophere.services.GraphEmailClient import graph_client

logger = logging.getLogger(__name__)


EMAIL_LAYOUT = """
<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
        .header {{ background: #6b21a8; color: white; padding: 24px; border-radius: 10px 10px 0 0; }}
        .content {{ background: #f9fafb; padding: 30px; border-radius: 0 0 10px 10px; }}
        .details {{ background: white; padding: 16px; border-radius: 8px; margin: 20px 0; border-left: 4px solid #6b21a8; }}
        .cta-button {{ display: inline-block; padding: 12px 24px; background: #6b21a8; color: white; text-decoration: none; border-radius: 4px; }}
        .footer {{ text-align: center; margin-top: 30px; color: #6b7280; font-size: 12px; }}
        h1 {{ margin: 0; font-size: 22px; }}
    </style>
</head>
<body>
    <div class="container">
        <div class="header">
            <h1>{heading}</h1>
        </div>
        <div class="content">
            <p>Hi <strong>{recipient_name}</strong>,</p>
            <p>{lead}</p>
            <div class="details">
                <p><strong>Agreement:</strong> {agreement_title}</p>
                {extra}
            </div>
            <a href="{agreement_url}" class="cta-button">View Agreement</a>
            <div class="footer">
                <p>This is an automated message from SwopHere. Please do not reply.</p>
            </div>
        </div>
    </div>
</body>
</html>
"""


def _agreement_url(swop_id: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/agreement/{swop_id}"


async def _send(to_email: Optional[str], subject: str, template_vars: Dict[str, str]) -> Dict[str, str]:
    """Best-effort send; every failure is logged and reported, never raised."""
    if not to_email:
        return {"status": "skipped", "reason": "no recipient email"}

    if not graph_client.is_configured:
        logger.info(f"Email disabled, skipping '{subject}' to {to_email}")
        return {"status": "skipped", "email": to_email, "reason": "email disabled"}

    try:
        await graph_client.send_email_with_template(
            to_emails=[to_email],
            subject=subject,
            template_html=EMAIL_LAYOUT,
            template_vars=template_vars,
        )
        return {"status": "sent", "email": to_email}
    except Exception as e:
        logger.error(f"Failed to send email '{subject}' to {to_email}: {e}", exc_info=True)
        return {"status": "failed", "email": to_email, "error": str(e)}


async def notify_agreement_proposed(
    recipient_email: Optional[str],
    recipient_name: str,
    from_user: str,
    agreement_title: str,
    swop_id: str,
) -> Dict[str, str]:
    """Tell the recipient a skill swap agreement is waiting for them."""
    return await _send(
        recipient_email,
        subject="New skill swap agreement from {from_user}",
        template_vars={
            "heading": "New Skill Swap Agreement",
            "recipient_name": html.escape(recipient_name),
            "from_user": from_user,
            "lead": f"<strong>{html.escape(from_user)}</strong> has proposed a skill swap agreement to you.",
            "agreement_title": html.escape(agreement_title or ""),
            "extra": "<p>Review the skills and terms, then accept or decline.</p>",
            "agreement_url": _agreement_url(swop_id),
        },
    )


async def notify_agreement_response(
    creator_email: Optional[str],
    creator_name: str,
    responder: str,
    agreement_title: str,
    swop_id: str,
    accepted: bool,
    reason: Optional[str] = None,
) -> Dict[str, str]:
    """Tell the creator their agreement was accepted or declined."""
    verb = "accepted" if accepted else "declined"
    extra = ""
    if not accepted and reason:
        extra = f"<p><strong>Reason:</strong> {html.escape(reason)}</p>"

    return await _send(
        creator_email,
        subject="{responder} " + verb + " your skill swap agreement",
        template_vars={
            "heading": f"Agreement {verb.capitalize()}",
            "recipient_name": html.escape(creator_name),
            "responder": responder,
            "lead": f"<strong>{html.escape(responder)}</strong> has {verb} your skill swap agreement.",
            "agreement_title": html.escape(agreement_title or ""),
            "extra": extra,
            "agreement_url": _agreement_url(swop_id),
        },
    )
