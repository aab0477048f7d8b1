# __main__.py
import os

import uvicorn


def main() -> None:
    # Cloud Run injects PORT
    uvicorn.run(
        "kb_triage.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
    )


if __name__ == "__main__":
    main()
