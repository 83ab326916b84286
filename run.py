"""
Serve the ingestion API with uvicorn.
Usage: python3 run.py   (from the repository root; HOST, PORT and FORWARDED_ALLOW_IPS come from .env)
"""
import uvicorn

from config import settings

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        proxy_headers=True,
        forwarded_allow_ips=settings.forwarded_allow_ips,
    )
