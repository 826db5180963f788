from html import escape

from src.core.events import EmailConfirmationMessage, OrderConfirmationMessage
from src.shared.constants import PRESIGNED_URL_EXPIRY_HOURS
from src.shared.translations import get_payment_method_label, get_text
from src.shared.utils import format_amount

LOGO_URL = "https://garagecomics.mx/_astro/logo.BU2cr8N9.png"
BRAND_RED = "#dc2626"


def _header() -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 640px; margin: 0 auto; background: #ffffff; line-height: 1.5;">
        <div style="text-align: center; padding: 32px 24px 24px; border-bottom: 4px solid {BRAND_RED};">
            <img src="{LOGO_URL}" alt="{escape(get_text('brand'))}" width="200" height="80">
        </div>
    """


def _footer() -> str:
    return f"""
        <div style="text-align: center; padding: 32px 24px; border-top: 1px solid #e2e8f0; color: #475569; font-size: 14px;">
            <p>{escape(get_text('signoff'))}</p>
            <p><strong>{escape(get_text('brand'))}</strong></p>
        </div>
    </div>
    """


def _greeting(name: str | None) -> str:
    if name:
        return escape(get_text("greeting_named", name=name))
    return escape(get_text("greeting"))


def render_download_ready(message: EmailConfirmationMessage, expiry_hours: int = PRESIGNED_URL_EXPIRY_HOURS) -> tuple[str, str]:
    """Returns (subject, html) for the "your comics are ready" email."""
    subject = get_text("download_subject", order_id=message.order_id)
    url = escape(message.presigned_url, quote=True)

    body = _header()
    body += f"""
        <div style="background: #f8fafc; padding: 32px 24px; color: #475569;">
            <h1 style="color: #1e293b; font-size: 24px; margin-top: 0;">{escape(get_text('download_heading'))}</h1>
            <p>{_greeting(None)}</p>
            <p>{escape(get_text('download_intro'))}</p>
            <p>{get_text('download_expiry', hours=expiry_hours)}</p>
        </div>
        <div style="padding: 24px;">
            <h2 style="color: #1e293b; font-size: 18px;">{escape(get_text('order_details_heading'))}</h2>
            <p><strong>{escape(get_text('order_reference'))}:</strong> {escape(message.order_id)}</p>
        </div>
        <div style="padding: 0 24px;">
            <h2 style="background: {BRAND_RED}; color: #ffffff; font-size: 18px; padding: 16px 24px; margin: 0;">
                {escape(get_text('download_items_heading'))}
            </h2>
            <ul style="list-style: none; padding: 0; margin: 0;">
    """

    # Same PDF bought twice is delivered once
    seen = set()
    for item in message.items:
        if item.product_slug in seen:
            continue
        seen.add(item.product_slug)
        body += f'<li style="border-bottom: 1px solid #e2e8f0; padding: 16px; color: #1e293b; font-weight: 600;">{escape(item.product_slug)}</li>'

    body += f"""
            </ul>
        </div>
        <div style="text-align: center; padding: 32px 24px;">
            <a href="{url}" style="background-color: {BRAND_RED}; color: #ffffff; padding: 16px 32px; border-radius: 8px;
               font-weight: 700; font-size: 18px; text-decoration: none; display: inline-block;">
                {escape(get_text('download_button'))}
            </a>
        </div>
        <div style="background: #eff6ff; border: 1px solid #bfdbfe; border-radius: 8px; padding: 16px 24px; margin: 0 24px; font-size: 14px; color: #3b82f6;">
            <p style="font-weight: 600; color: #2563eb;">{escape(get_text('download_notice_heading'))}</p>
            <p>• {escape(get_text('download_notice_personal'))}</p>
            <p>• {escape(get_text('download_notice_share'))}</p>
            <p>• {escape(get_text('download_notice_help'))}</p>
        </div>
    """
    body += _footer()
    return subject, body


def render_order_confirmation(message: OrderConfirmationMessage) -> tuple[str, str]:
    """Returns (subject, html) for the "payment received" email."""
    subject = get_text("confirmation_subject", order_id=message.order_id)

    body = _header()
    body += f"""
        <div style="background: #f8fafc; padding: 32px 24px; color: #475569;">
            <h1 style="color: #1e293b; font-size: 24px; margin-top: 0;">{escape(get_text('confirmation_heading'))}</h1>
            <p>{_greeting(message.customer_name)}</p>
            <p>{escape(get_text('confirmation_intro'))}</p>
        </div>
        <div style="padding: 24px;">
            <h2 style="color: #1e293b; font-size: 18px;">{escape(get_text('order_details_heading'))}</h2>
            <p><strong>{escape(get_text('order_reference'))}:</strong> {escape(message.order_id)}</p>
            <p><strong>{escape(get_text('confirmation_payment_method'))}:</strong> {escape(get_payment_method_label(message.payment_method))}</p>
        </div>
        <div style="padding: 0 24px;">
            <h2 style="background: {BRAND_RED}; color: #ffffff; font-size: 18px; padding: 16px 24px; margin: 0;">
                {escape(get_text('confirmation_items_heading'))}
            </h2>
            <table style="width: 100%; border-collapse: collapse;">
    """

    for item in message.items:
        image = ""
        if item.product_image:
            image = f'<img src="{escape(item.product_image, quote=True)}" alt="" width="64" style="border-radius: 4px;">'
        body += f"""
                <tr style="border-bottom: 1px solid #e2e8f0;">
                    <td style="padding: 16px; width: 80px;">{image}</td>
                    <td style="padding: 16px; color: #1e293b; font-weight: 600;">{escape(item.product_name)}</td>
                    <td style="padding: 16px; text-align: right;">{escape(format_amount(item.amount))}</td>
                </tr>
        """

    body += f"""
                <tr>
                    <td></td>
                    <td style="padding: 16px; font-weight: 700;">{escape(get_text('confirmation_total'))}</td>
                    <td style="padding: 16px; text-align: right; font-weight: 700;">{escape(format_amount(message.total))}</td>
                </tr>
            </table>
        </div>
    """
    body += _footer()
    return subject, body
