from mangum import Mangum

from medreminder.main import app

# ASGI handler for serverless deployment. Lifespan events do not run here,
# so the LINE webhook arms the scheduler on its first request.
handler = Mangum(app, lifespan="off")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
