"""Extension instances bound to the app in create_app."""

from flask_mail import Mail
from flask_wtf.csrf import CSRFProtect

# Sends waitlist promotion notices.
mail = Mail()
csrf = CSRFProtect()
