import os
from dotenv import load_dotenv

load_dotenv()

from force3 import create_app

app = create_app()

# python run.py -> servidor de desarrollo; en producción, flask run / gunicorn "run:app"
if __name__ == "__main__":
    debug = os.getenv("FLASK_ENV", "development") == "development"
    app.run(
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", 5000)),
        debug=debug,
    )
