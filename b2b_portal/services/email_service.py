"""
Email service for internal order notifications.
Uses Flask-Mail for SMTP integration with UTF-8 support.
"""
import logging
import smtplib
from datetime import datetime

from flask import current_app
from flask_mail import Connection, Mail, Message
from markupsafe import escape

from b2b_portal.services.results import StepResult
from b2b_portal.utils.formatters import money_cl

logger = logging.getLogger(__name__)


class TimeoutConnection(Connection):
    """
    SMTP connection with a socket timeout.

    Flask-Mail opens ``smtplib.SMTP(server, port)`` without one, so a server
    that accepts the TCP connection and never answers blocks the request.
    """

    def __init__(self, mail, timeout):
        super().__init__(mail)
        self.timeout = timeout

    def configure_host(self):
        if self.mail.use_ssl:
            host = smtplib.SMTP_SSL(self.mail.server, self.mail.port, timeout=self.timeout)
        else:
            host = smtplib.SMTP(self.mail.server, self.mail.port, timeout=self.timeout)

        host.set_debuglevel(int(self.mail.debug))

        if self.mail.use_tls:
            host.starttls()

        if self.mail.username and self.mail.password:
            host.login(self.mail.username, self.mail.password)

        return host


class PortalMail(Mail):
    """Flask-Mail extension whose connections honour MAIL_TIMEOUT."""

    def connect(self):
        app = getattr(self, 'app', None) or current_app
        try:
            state = app.extensions['mail']
        except KeyError as e:
            raise RuntimeError('The current application was not configured with Flask-Mail') from e
        return TimeoutConnection(state, app.config.get('MAIL_TIMEOUT', 10))


def init_mail(app) -> Mail:
    """Initialize Flask-Mail with app."""
    mail = PortalMail()
    mail.init_app(app)
    return mail


class OrderNotifier:
    """Sends the new-order summary to the internal mailbox."""

    def __init__(self, mail: Mail, config):
        self.mail = mail
        self.config = config

    @property
    def recipient(self) -> str:
        return self.config.get('ORDER_NOTIFICATION_EMAIL')

    def mail_enabled(self) -> bool:
        """
        Check if mail is properly configured and enabled.
        An unconfigured transport is a valid state: notifications are skipped.
        """
        cfg = self.config
        return bool(
            not cfg.get("MAIL_SUPPRESS_SEND", False)
            and cfg.get("MAIL_SERVER")
            and cfg.get("MAIL_USERNAME")
            and self.recipient
        )

    def send_order_notification(self, customer, summary, order: dict) -> StepResult:
        """
        Send the order summary (lines with net/IVA, totals, discount).

        Args:
            customer: Session customer
            summary: CartSummary from pricing_service
            order: Dict with draftOrderId, draftOrderNumber, total, discount

        Returns:
            StepResult.ok(recipient), .skipped when mail is not configured,
            .failed on any send error
        """
        if not self.mail_enabled():
            logger.warning(f"[MAIL DISABLED] Order notification skipped for #{order.get('draftOrderNumber')}")
            return StepResult.skipped('mail transport not configured')

        try:
            customer_name = customer.full_name or customer.email
            msg = Message(
                subject=f"🎯 Nuevo Pedido B2B IMA - {customer_name} - #{order.get('draftOrderNumber')}",
                recipients=[self.recipient],
                html=render_order_email(customer, summary, order),
            )
            logger.info(f"[EMAIL] Enviando notificación del pedido #{order.get('draftOrderNumber')}...")
            self.mail.send(msg)
            logger.info(f"[EMAIL] ✓ Order notification sent to {self.recipient}")
            return StepResult.ok(self.recipient)

        except Exception as e:
            logger.exception(f"[EMAIL] ✗ Error sending order notification: {e}")
            return StepResult.failed(str(e))


def render_order_email(customer, summary, order: dict) -> str:
    """HTML body of the order notification."""
    rows = "".join(
        f"""
            <tr>
                <td>
                    <strong>{escape(line.title)}</strong><br>
                    <small>ID: {escape(line.variant_id)}</small>
                </td>
                <td align="center">{line.quantity}</td>
                <td align="right">{money_cl(line.unit.net)}</td>
                <td align="right">{money_cl(line.unit.tax)}</td>
                <td align="right">{money_cl(line.unit.gross)}</td>
                <td align="right">{money_cl(line.line.gross)}</td>
            </tr>
            """
        for line in summary.lines
    )
    totals = summary.totals

    return f"""
        <!DOCTYPE html>
        <html lang="es">
        <head>
            <meta charset="UTF-8">
            <style>
                body {{ font-family: Arial, sans-serif; color: #333; }}
                .container {{ max-width: 800px; margin: auto; padding: 20px; }}
                .header {{ background: #FFCE36; color: #333; padding: 20px; text-align: center; }}
                th {{ background: #FFCE36; padding: 10px; }}
                td {{ padding: 10px; border-bottom: 1px solid #eee; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>🎯 NUEVO PEDIDO B2B</h1>
                    <p>Portal B2B - Usuario IMA</p>
                </div>

                <h2>👤 Información del Cliente</h2>
                <p>
                    <strong>Nombre:</strong> {escape(customer.full_name or 'N/A')}<br>
                    <strong>Email:</strong> {escape(customer.email)}<br>
                    <strong>Empresa:</strong> {escape(customer.company or 'N/A')}<br>
                    <strong>Descuento B2B:</strong> {summary.discount}%<br>
                    <strong>Pedido #:</strong> {escape(order.get('draftOrderNumber'))}
                </p>

                <h2>🛒 Productos Solicitados</h2>
                <table width="100%" cellspacing="0">
                    <tr>
                        <th align="left">Producto</th>
                        <th>Cant.</th>
                        <th align="right">Precio Neto</th>
                        <th align="right">IVA (19%)</th>
                        <th align="right">Precio c/IVA</th>
                        <th align="right">Total Línea</th>
                    </tr>
                    {rows}
                </table>

                <table style="margin-left: auto; margin-top: 20px;">
                    <tr><td>Subtotal Neto:</td><td align="right">{money_cl(totals.net)}</td></tr>
                    <tr><td>IVA (19%):</td><td align="right">{money_cl(totals.tax)}</td></tr>
                    <tr><td>Subtotal con IVA:</td><td align="right">{money_cl(totals.gross)}</td></tr>
                    <tr><td>Descuento B2B ({summary.discount}%):</td><td align="right">-{money_cl(summary.discount_amount)}</td></tr>
                    <tr><td><strong>TOTAL FINAL:</strong></td><td align="right"><strong>{money_cl(totals.discounted_gross)}</strong></td></tr>
                </table>

                <h3>💳 Método de Pago</h3>
                <p><strong>Acuerdo Comercial IMA</strong> - Los pagos se rigen según el convenio establecido con el cliente.</p>

                <p style="font-size: 13px; color: #666;">
                    Este pedido fue generado automáticamente desde el Portal B2B.<br>
                    Fecha: {datetime.now().strftime('%d/%m/%Y %H:%M')}
                </p>
            </div>
        </body>
        </html>
        """
