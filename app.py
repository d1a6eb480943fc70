"""Development entry point: ``python app.py``."""

from src.school_management.school_management.main import create_app

app = create_app()


if __name__ == "__main__":
    app.run(debug=app.config["DEBUG"])
