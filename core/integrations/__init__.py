"""
Taskboard Core Integrations: Outbound Delivery.

Provides vendor-agnostic clients for external collaborators:
- EmailSender: Managed email API client
"""
from core.integrations.email_sender import (
    EmailDelivery,
    EmailMessage,
    EmailSender,
)

__all__ = [
    "EmailDelivery",
    "EmailMessage",
    "EmailSender",
]
