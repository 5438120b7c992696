import os


def _env_bool(name, default='False'):
    return os.getenv(name, default).lower() == 'true'


class Config:
    # Environment
    FLASK_ENV = os.getenv('FLASK_ENV', 'development')
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Public URL used for links in outgoing emails
    APP_URL = os.getenv('APP_URL', '#')

    # OpenAI configuration
    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
    CONTRACT_MODEL = os.getenv('CONTRACT_MODEL', 'gpt-4o')
    CONTRACT_MAX_TOKENS = int(os.getenv('CONTRACT_MAX_TOKENS', 8192))

    # PandaDoc configuration
    PANDADOC_API_KEY = os.getenv('PANDADOC_API_KEY')
    PANDADOC_WEBHOOK_SECRET = os.getenv('PANDADOC_WEBHOOK_SECRET')
    PANDADOC_API_URL = os.getenv('PANDADOC_API_URL', 'https://api.pandadoc.com/public/v1')
    PANDADOC_POLL_INTERVAL = float(os.getenv('PANDADOC_POLL_INTERVAL', 6))
    PANDADOC_POLL_TIMEOUT = float(os.getenv('PANDADOC_POLL_TIMEOUT', 60))

    # SendGrid configuration
    SENDGRID_API_KEY = os.getenv('SENDGRID_API_KEY')
    MAIL_FROM_EMAIL = os.getenv('MAIL_FROM_EMAIL', 'contracts@deed.app')

    # PandaDoc delivers its own signing requests; our signer emails are opt-in
    SIGNER_EMAILS_ENABLED = _env_bool('SIGNER_EMAILS_ENABLED')
