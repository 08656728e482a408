import sys
import os
import uvicorn

if sys.platform == "win32":
    import asyncio
    asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())

if __name__ == "__main__":
    host = os.environ.get("AQUACHAT_HOST", "localhost")
    port = int(os.environ.get("AQUACHAT_PORT", "8000"))
    log_level = os.environ.get("AQUACHAT_LOG_LEVEL", "info").lower()
    uvicorn.run(
        "aquachat.server:app",
        host=host,
        port=port,
        log_level=log_level,
        reload=os.environ.get("AQUACHAT_RELOAD", "") == "1",
        reload_dirs=["aquachat"],
    )
