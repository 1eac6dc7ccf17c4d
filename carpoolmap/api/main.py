"""
FastAPI app for the carpool map core.

Capa HTTP sobre la sesión de mapa. Sin lógica de mapa aquí.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from carpoolmap.api.router import router as map_router
from carpoolmap.utils.logging import setup_logging

setup_logging()

app = FastAPI(
    title="CarpoolMap API",
    description="API HTTP sobre el núcleo de interacción del mapa",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(map_router)


@app.get("/")
def root():
    """Endpoint raíz"""
    return {"message": "CarpoolMap API", "status": "ok"}


# Bloque para ejecutar con uvicorn
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
