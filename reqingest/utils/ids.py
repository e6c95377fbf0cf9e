"""
Job identifiers.
"""

import time
import uuid


def generate_job_id(prefix: str = "job") -> str:
    """
    Generate a job id of the form ``<prefix>_<epoch ms>_<random hex>``.

    The millisecond component keeps ids roughly sortable by creation time.
    """
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:10]}"
