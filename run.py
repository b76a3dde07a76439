import uvicorn

from training_portal.config.settings import settings

if __name__ == "__main__":
    uvicorn.run(
        "training_portal.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,  # 开发模式
        log_level=settings.LOG_LEVEL.lower(),
    )
