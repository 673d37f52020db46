"""
Run the API with uvicorn.

Example:
  LUNAPOS_RELOAD=true python -m lunapos
"""
import os
import uvicorn


def main() -> None:
    reload = os.getenv("LUNAPOS_RELOAD", "false").lower() == "true"
    host = os.getenv("LUNAPOS_HOST", "0.0.0.0")
    port = int(os.getenv("LUNAPOS_PORT", "5000"))
    uvicorn.run("lunapos.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    main()
