# utils/naming.py
"""
Helpers for turning resource names into CDK construct ids.
"""

import re


def to_pascal(s: str) -> str:
    """
    Convert any naming convention to PascalCase.

    Examples:
        >>> to_pascal("grpc-discovery-demo")
        'GrpcDiscoveryDemo'
        >>> to_pascal("client_sg")
        'ClientSg'
        >>> to_pascal("serverSecurityGroup")
        'ServerSecurityGroup'
    """
    if not s:
        return s

    normalized = re.sub(r"[_\s.]", "-", s)
    # "serverSecurityGroup" -> "server-Security-Group"
    normalized = re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", normalized)

    return "".join(part.capitalize() for part in normalized.split("-") if part)


def sanitize_for_cfn(s: str) -> str:
    """Keep letters and digits only, as CloudFormation logical ids require."""
    return re.sub(r"[^A-Za-z0-9]", "", s)
