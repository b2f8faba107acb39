# delta_backup.py
# Retrieve the target org's current copy of delta/package/package.xml
# into deltabackup-<timestamp>/ before deploying.
from sfdelta.cli import delta_backup_main

if __name__ == "__main__":
    delta_backup_main()
