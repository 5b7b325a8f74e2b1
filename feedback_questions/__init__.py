# Package marker
# feedback_questions/__init__.py
from feedback_questions.db.session import engine
from feedback_questions.db.base import Base

def init_db():
    Base.metadata.create_all(bind=engine)
