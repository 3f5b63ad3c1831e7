"""REST adapter over the booking core (FastAPI, served by uvicorn or Mangum)."""
