from ims import create_app, celery  # celery worker: celery -A run.celery worker


app = create_app()
app.app_context().push()  # keeps the app context active for the celery worker


if __name__ == '__main__':
    app.run(host='0.0.0.0', port=5000, debug=True)
