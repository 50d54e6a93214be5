from workshop import create_app

app = create_app()

# gunicorn entry point: gunicorn -w 2 wsgi:app
