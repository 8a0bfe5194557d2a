import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "launcher.main:app",
        host=os.getenv("LAUNCHER_HOST", "0.0.0.0"),
        port=int(os.getenv("LAUNCHER_PORT", "8000")),
    )


if __name__ == "__main__":
    main()
