# feedback_questions/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from feedback_questions import init_db
from feedback_questions.core.config import settings
from feedback_questions.core.logging_config import setup_logging
from feedback_questions.api.v1.endpoints import health, questions

setup_logging()

app = FastAPI(title=settings.PROJECT_NAME)

origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
@app.on_event("startup")
def on_startup():
    init_db()


app.include_router(health.router, prefix=settings.API_V1_PREFIX)
app.include_router(questions.router, prefix=settings.API_V1_PREFIX)
