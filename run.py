"""
Script to start the text pipeline service
"""

if __name__ == "__main__":
    import uvicorn
    from utp.config import get_settings
    from utp.core.logging import setup_logging

    settings = get_settings()

    setup_logging(log_level=settings.LOG_LEVEL, is_debug=settings.DEBUG)

    print(f"🚀 Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    print(f"📡 Server: http://{settings.HOST}:{settings.PORT}")
    print(f"📚 Docs: http://{settings.HOST}:{settings.PORT}/docs")
    print(f"🔧 Recognition backend: {settings.RECOGNITION_BACKEND}")
    print()

    uvicorn.run(
        "utp.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
