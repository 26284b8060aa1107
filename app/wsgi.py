from app.homecare import create_app

app = create_app()
