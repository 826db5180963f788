"""
Customer-facing copy for the transactional emails (Spanish, es-MX).
"""

TEXTS = {
    # Download ready
    "download_subject": "¡Tu pedido #{order_id} está listo para descargar!",
    "download_heading": "¡Tus cómics están listos!",
    "download_intro": (
        "Tu pedido ha sido procesado y tus cómics digitales ya están disponibles para descarga. "
        "Haz clic en el botón de abajo para descargarlos."
    ),
    "download_expiry": (
        "El enlace de descarga estará activo durante <strong>{hours} horas</strong> a partir de que "
        "recibas este correo. Te recomendamos descargar tus cómics lo antes posible."
    ),
    "download_button": "🔽 Descargar Cómics (ZIP)",
    "download_items_heading": "Cómics Incluidos",
    "download_notice_heading": "⚠️ Información Importante",
    "download_notice_personal": "Los enlaces de descarga son únicos y personales para tu pedido",
    "download_notice_share": "No compartas estos enlaces con terceros",
    "download_notice_help": "Si tienes problemas con la descarga, responde a este correo",
    # Order confirmation
    "confirmation_subject": "¡Gracias por tu pedido #{order_id}!",
    "confirmation_heading": "¡Gracias por tu compra!",
    "confirmation_intro": (
        "Hemos recibido tu pago. En unos minutos recibirás otro correo con el enlace para descargar tus cómics."
    ),
    "confirmation_items_heading": "Resumen del Pedido",
    "confirmation_total": "Total",
    "confirmation_payment_method": "Método de pago",
    # Shared
    "greeting": "Hola,",
    "greeting_named": "Hola {name},",
    "order_details_heading": "Detalles del Pedido",
    "order_reference": "Referencia",
    "signoff": "Si tienes alguna pregunta, no dudes en contactarnos. Estamos aquí para ayudarte.",
    "brand": "Garage Comics",
}

PAYMENT_METHODS = {
    "card": "Tarjeta",
    "oxxo": "OXXO",
}


def get_text(key: str, **kwargs) -> str:
    text = TEXTS[key]
    return text.format(**kwargs) if kwargs else text


def get_payment_method_label(method: str) -> str:
    return PAYMENT_METHODS.get(method, method)
