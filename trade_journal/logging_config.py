import logging
import logging.config
import sys
from pathlib import Path
from datetime import datetime
from .config import Settings

AUDIT_LOGGER = 'journal_audit'


def setup_logging(settings: Settings):
    """Setup logging for the journal API: console, rotating app log and audit log"""

    # Create logs directory if it doesn't exist
    logs_dir = Path(settings.log_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)

    # Generate log filenames with current date
    today = datetime.now().strftime('%Y-%m-%d')
    level = settings.log_level.upper()

    logging_config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'detailed': {
                'format': '%(asctime)s | %(levelname)-8s | %(name)-20s | %(funcName)-15s | %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'console': {
                'format': '📓 %(asctime)s | %(levelname)-8s | %(message)s',
                'datefmt': '%H:%M:%S'
            },
            'audit': {
                'format': '%(asctime)s | AUDIT | %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            }
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': level,
                'formatter': 'console',
                'stream': sys.stdout
            },
            'file': {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': 'DEBUG',
                'formatter': 'detailed',
                'filename': logs_dir / f"journal_{today}.log",
                'maxBytes': 10485760,  # 10MB
                'backupCount': 5,
                'encoding': 'utf8'
            },
            'audit_file': {
                'class': 'logging.handlers.RotatingFileHandler',
                'level': 'INFO',
                'formatter': 'audit',
                'filename': logs_dir / f"audit_{today}.log",
                'maxBytes': 5242880,  # 5MB
                'backupCount': 10,
                'encoding': 'utf8'
            }
        },
        'loggers': {
            'trade_journal': {
                'level': level,
                'handlers': ['console', 'file'],
                'propagate': False
            },
            AUDIT_LOGGER: {
                'level': 'INFO',
                'handlers': ['audit_file', 'file'],
                'propagate': False
            },
            'uvicorn.access': {
                'level': 'INFO',
                'handlers': ['file'],
                'propagate': False
            }
        },
        'root': {
            'level': level,
            'handlers': ['console', 'file']
        }
    }

    logging.config.dictConfig(logging_config)

    logger = logging.getLogger(__name__)
    logger.info(f"🔧 Logging initialized, logs saved to: {logs_dir.absolute()}")

    return logging.getLogger(AUDIT_LOGGER)


def get_audit_logger():
    """Get the audit logger"""
    return logging.getLogger(AUDIT_LOGGER)
