from .contracts import BackupRecordRepo
from .models import BackupRecordRow

__all__ = ["BackupRecordRepo", "BackupRecordRow"]
