# routes/contracts/__init__.py
"""
Purchase Agreement Routes Package
JSON API used by the contract drafting front end, plus the PandaDoc webhook.

- generate.py: Stream a drafted contract from the LLM
- send.py: Build the PDF and start the PandaDoc signing chain
- webhook.py: PandaDoc recipient_completed webhook
- helpers.py: Service construction from app config
"""

from flask import Blueprint

# Create the blueprint - all sub-modules will register routes on this
contracts_bp = Blueprint('contracts', __name__, url_prefix='/api', template_folder='templates')

# Import all route modules AFTER blueprint creation
# Each module imports contracts_bp and registers routes on it
from . import generate
from . import send
from . import webhook
