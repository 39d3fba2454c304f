"""
Módulo de rotas do WhatsApp.

Este módulo contém:
- webhook.py: Endpoints de webhook (Z-API e Twilio) e status
- utils.py: Assinatura, registro de números e TwiML
"""

from backend.routes.whatsapp.webhook import router

__all__ = ["router"]
