from app.pressroom import create_app

app = create_app()
