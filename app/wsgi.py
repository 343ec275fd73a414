from app.ceklis import create_app

app = create_app()
