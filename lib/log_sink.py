import logging

from aws_cdk import RemovalPolicy
from aws_cdk import aws_logs as logs
from constructs import Construct

from topology.descriptors import LogSinkDescriptor

logger = logging.getLogger(__name__)

RETENTION_DAYS = {
    1: logs.RetentionDays.ONE_DAY,
    3: logs.RetentionDays.THREE_DAYS,
    5: logs.RetentionDays.FIVE_DAYS,
    7: logs.RetentionDays.ONE_WEEK,
    14: logs.RetentionDays.TWO_WEEKS,
    30: logs.RetentionDays.ONE_MONTH,
    60: logs.RetentionDays.TWO_MONTHS,
    90: logs.RetentionDays.THREE_MONTHS,
    120: logs.RetentionDays.FOUR_MONTHS,
    150: logs.RetentionDays.FIVE_MONTHS,
    180: logs.RetentionDays.SIX_MONTHS,
    365: logs.RetentionDays.ONE_YEAR,
    400: logs.RetentionDays.THIRTEEN_MONTHS,
    545: logs.RetentionDays.EIGHTEEN_MONTHS,
    731: logs.RetentionDays.TWO_YEARS,
    1096: logs.RetentionDays.THREE_YEARS,
    1827: logs.RetentionDays.FIVE_YEARS,
    2192: logs.RetentionDays.SIX_YEARS,
    2557: logs.RetentionDays.SEVEN_YEARS,
    2922: logs.RetentionDays.EIGHT_YEARS,
    3288: logs.RetentionDays.NINE_YEARS,
    3653: logs.RetentionDays.TEN_YEARS,
}


class LogSink(Construct):
    """CloudWatch log group shared by several services."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        log_sink: LogSinkDescriptor,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)
        self._log_sink = log_sink

        logger.info(f"Creating log group: {self._log_sink}")
        self._log_group = logs.LogGroup(
            self,
            "LogGroup",
            log_group_name=self._log_sink.name,
            retention=RETENTION_DAYS[self._log_sink.retention_days],
            removal_policy=(
                RemovalPolicy.DESTROY if self._log_sink.destroy_on_teardown else RemovalPolicy.RETAIN
            ),
        )

    @property
    def log_group(self) -> logs.LogGroup:
        return self._log_group
