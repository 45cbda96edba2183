"""Serverless entry point: the same application behind an AWS Lambda style handler."""
from mangum import Mangum

from recurring_tasks.main import build_default_app

app = build_default_app()

# ASGI handler for serverless deployment
handler = Mangum(app, lifespan="off")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
