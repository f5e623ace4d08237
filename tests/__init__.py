"""Workspace Toolkit Test Suite

Test organization:
- unit/: Unit tests for individual modules
  - aws/: Route53 wrapper
  - netlify/: Netlify async client (httpx.MockTransport)
  - google/: Auth, OAuth callback server, Admin, Drive, Docs, Gmail
  - excel/, pdf/: File-format readers
  - git/: Subtree synchronization
  - roles/: Orchestrator CLIs
  - test_credentials.py, test_cli.py: Shared credential store and toolkit CLI
"""
