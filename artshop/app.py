# module artshop.app
from artshop.app_setup.factory import create_app

# App globale
app = create_app()
