from permitflow import create_app

app = create_app()
