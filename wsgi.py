import os

from mint_api import create_app

# factory con config según FLASK_ENV (default "development")
app = create_app(os.getenv("FLASK_ENV", "development"))

if __name__ == "__main__":
    # importante para Docker
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", 5000)), debug=app.debug, use_reloader=False)
