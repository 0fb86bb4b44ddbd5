#!/usr/bin/env python
"""Management entry point for the Expérience Tech backend."""
import os
import sys


def main():
    # `manage.py test` runs against SQLite, eager Celery and the locmem mailbox
    running_tests = sys.argv[1:2] == ['test']
    os.environ.setdefault(
        'DJANGO_SETTINGS_MODULE',
        'core.settings.test' if running_tests else 'core.settings.base',
    )

    from django.core.management import execute_from_command_line

    execute_from_command_line(sys.argv)


if __name__ == '__main__':
    main()
