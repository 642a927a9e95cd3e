import logging
import os

import uvicorn

if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("OHM_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    host = os.environ.get("OHM_HOST", "0.0.0.0")
    port = int(os.environ.get("OHM_PORT", "3000"))

    logging.getLogger("ohm").info(
        "Starting traffic topology API on %s:%d (docs at /docs)", host, port
    )

    uvicorn.run(
        "ohm.api.server:app",
        host=host,
        port=port,
    )
