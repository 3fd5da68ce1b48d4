import os

import uvicorn
from dotenv import load_dotenv

load_dotenv()

from app.main import app  # noqa: E402

if __name__ == "__main__":
    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )
