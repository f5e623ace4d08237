"""Role orchestrators: command dispatchers that combine the shared tools

Components:
    system_administrator/: Workspace directory, mail aliases, DNS and site hosting
    senior_developer/: Project detection, quality checks, git and file readers
"""
