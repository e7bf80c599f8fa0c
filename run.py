"""Entry point for the boat base server."""

import uvicorn

if __name__ == "__main__":
    uvicorn.run(
        "boatbase.server:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
    )
