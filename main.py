import logging
import os

import uvicorn

logging.getLogger().handlers.clear()
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    logging.info("Starting raffle automation API on port %d", port)
    uvicorn.run("api_server.main:app", host="0.0.0.0", port=port)
