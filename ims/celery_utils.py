from flask import has_app_context


def init_celery(app, celery_app):
    """
    Configures the global celery_app with the CELERY block of Flask's config.
    """
    celery_app.conf.update(app.config.get('CELERY') or {})

    # ContextTask ensures the task runs inside Flask's "app context"
    # so Flask-Mail and the templates can see the app config.
    # Eager tasks already run inside the caller's context.
    class ContextTask(celery_app.Task):
        def __call__(self, *args, **kwargs):
            if has_app_context():
                return self.run(*args, **kwargs)
            with app.app_context():
                return self.run(*args, **kwargs)

    celery_app.Task = ContextTask
    celery_app.main = app.import_name
    return celery_app
