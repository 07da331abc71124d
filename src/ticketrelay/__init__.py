"""ticketrelay: outbound ticket and alert notification delivery."""

__version__ = "0.1.0"
