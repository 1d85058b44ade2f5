"""Create the form builder tables and the upload directory.

Run with ``--drop`` to recreate every table from scratch (all forms, responses and file records are lost).
"""
import argparse
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from formbuilder.config import settings
from formbuilder.database import engine, Base
import formbuilder.models  # noqa: F401 - registers all models


def init_db(drop: bool = False):
    if drop:
        print("Dropping form builder tables...")
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    print(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")
    print(f"Upload directory: {os.path.abspath(settings.UPLOAD_DIR)}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    init_db(drop=parser.parse_args().drop)
