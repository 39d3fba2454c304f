# Zela Financeiro - Services
from backend.services.llm import LLMService, llm_service
from backend.services.memory_service import MemoryService, memory_service
from backend.services.whatsapp import WhatsAppService, whatsapp_service

__all__ = [
    "LLMService",
    "MemoryService",
    "WhatsAppService",
    "llm_service",
    "memory_service",
    "whatsapp_service",
]
