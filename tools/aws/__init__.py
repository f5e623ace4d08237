"""AWS tooling.

Components:
    route53.py: Hosted zone and DNS record management
"""

from tools.aws.route53 import Route53Client, create_route53_client

__all__ = ["Route53Client", "create_route53_client"]
