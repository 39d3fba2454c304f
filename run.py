#!/usr/bin/env python3
"""
Script para iniciar o Zela Financeiro
"""

import sys


def main():
    print("=" * 60)
    print("   ZELA FINANCEIRO - Assistente Financeiro pelo WhatsApp")
    print("=" * 60)
    print()

    try:
        from backend.models import criar_tabelas, inserir_categorias_padrao

        print("[*] Criando/Verificando tabelas...")
        criar_tabelas()
        inseridas = inserir_categorias_padrao()
        if inseridas:
            print(f"[OK] {inseridas} categorias padrao inseridas!")
        print("[OK] Banco de dados configurado!")
        print()

    except Exception as e:
        print(f"[ERRO] Erro ao configurar banco: {e}")
        print("   Verifique DATABASE_URL no arquivo .env")
        sys.exit(1)

    from backend.config import settings
    import uvicorn

    print(f"   API Docs: http://localhost:{settings.PORT}/docs")
    print(f"   Webhook Z-API: http://localhost:{settings.PORT}/api/whatsapp/webhook")
    print(f"   Webhook Twilio: http://localhost:{settings.PORT}/api/whatsapp/twilio")
    print(f"   Worker de lembretes: arq backend.worker.WorkerSettings")
    print()
    print("=" * 60)
    print()

    uvicorn.run(
        "backend.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG
    )


if __name__ == "__main__":
    main()
