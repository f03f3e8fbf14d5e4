# app.py
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load environment variables from .env before services read them
load_dotenv()

from routes.mapping import router as mapping_router
from routes.queue import router as queue_router

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

app = FastAPI(
    title="Skeleton Mapper",
    description="Maps vendor skeletons onto the canonical humanoid bone set",
    version="1.0.0",
)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_credentials=True, allow_methods=["*"], allow_headers=["*"])


# root healthcheck
@app.get("/")
def home():
    return {"status": "Skeleton Mapper Running (FastAPI)"}


app.include_router(mapping_router, prefix="/mapping")
app.include_router(queue_router, prefix="/queue")

# Optional: run with python app.py
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app:app", host="0.0.0.0", port=8000, reload=True)
