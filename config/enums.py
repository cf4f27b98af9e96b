from enum import Enum


class AwsRegion(str, Enum):
    US_EAST_1 = "us-east-1"
    US_EAST_2 = "us-east-2"
    US_WEST_1 = "us-west-1"
    US_WEST_2 = "us-west-2"
    EU_WEST_1 = "eu-west-1"
    EU_WEST_2 = "eu-west-2"
    EU_WEST_3 = "eu-west-3"
    EU_CENTRAL_1 = "eu-central-1"
    EU_CENTRAL_2 = "eu-central-2"
    EU_NORTH_1 = "eu-north-1"
    AP_SOUTHEAST_1 = "ap-southeast-1"
    AP_SOUTHEAST_2 = "ap-southeast-2"
    AP_NORTHEAST_1 = "ap-northeast-1"


class NamespaceKind(str, Enum):
    """Cloud Map namespace flavours the cluster can create."""

    HTTP = "http"
    DNS_PRIVATE = "dns_private"


class PolicyEffect(str, Enum):
    ALLOW = "Allow"
    DENY = "Deny"


# CloudWatch Logs only accepts these retention periods (in days).
LOG_RETENTION_DAYS = (
    1,
    3,
    5,
    7,
    14,
    30,
    60,
    90,
    120,
    150,
    180,
    365,
    400,
    545,
    731,
    1096,
    1827,
    2192,
    2557,
    2922,
    3288,
    3653,
)

FARGATE_CPU_UNITS = (256, 512, 1024, 2048, 4096, 8192, 16384)
