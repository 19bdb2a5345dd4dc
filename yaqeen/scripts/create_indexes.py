# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Create the MongoDB indexes the API relies on, including the unique
constraints on account email and family code.
"""

import logging
import sys

from ..config import load_config
from ..observability.config import setup_structured_logging
from ..middleware.error_handler import InternalException
from ..services.mongodb import MongoDBService

logger = logging.getLogger(__name__)


def main() -> int:
    config = load_config()
    setup_structured_logging(config['ENVIRONMENT'])

    mongodb_service = MongoDBService(
        config['MONGODB_URI'],
        config['MONGODB_DATABASE'],
        max_pool_size=config['MONGODB_MAX_POOL_SIZE']
    )
    try:
        mongodb_service.create_indexes()
    except InternalException as e:
        logger.error("Index creation failed", extra={"error": e.message})
        return 1
    finally:
        mongodb_service.close_connection()

    logger.warning("Indexes created", extra={"database": mongodb_service.database_name})
    return 0


if __name__ == '__main__':
    sys.exit(main())
