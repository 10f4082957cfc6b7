# app/outbound/__init__.py
from .gateway import SendGateway, OutboundSendRequest, OutboundSendReceipt, SendStatus
from .dry_run import DryRunSendGateway
from .meta import MetaSendGateway, MetaWhatsAppClient, MetaWhatsAppError
from .factory import build_send_gateway
