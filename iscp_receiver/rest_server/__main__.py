# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
A REST FastAPI server that controls an Onkyo/Pioneer receiver.

Environment:
    ISCP_REST_HOST, ISCP_REST_PORT: listen address (default 0.0.0.0:8000).
    ISCP_REST_LOG_LEVEL: logging level (default INFO).
"""
import os
import sys
import uvicorn
import logging
from dotenv import load_dotenv

def run() -> int:
    load_dotenv()

    log_level = os.environ.get("ISCP_REST_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=log_level)

    host = os.environ.get("ISCP_REST_HOST", "0.0.0.0")
    port = int(os.environ.get("ISCP_REST_PORT", "8000"))

    from iscp_receiver.rest_server.app import proj_api
    uvicorn.run(proj_api, host=host, port=port, log_config=None)
    return 0

if __name__ == "__main__":
    rc = run()
    sys.exit(rc)
