import logging
import uvicorn
from core.config import load_service_config

if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # 读取配置端口
    service = load_service_config()

    logging.getLogger(__name__).info("Starting server on %s:%s...", service.host, service.port)
    uvicorn.run("api.app:app", host=service.host, port=service.port, reload=True)
