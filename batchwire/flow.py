"""
TriggerFlow - one pass of Trigger Source -> Request Builder -> Launch Gateway.

A tick polls the source, builds one launch request per event and launches
it. The tick never waits for the launched jobs. Failures are contained per
event: a malformed event or a failed launch is logged and the remaining
events of the batch are still launched.
"""

import logging
from typing import Protocol

from batchwire.errors import LaunchError, MalformedEventError
from batchwire.gateway import LaunchGateway
from batchwire.schemas import JobExecution, JobLaunchRequest, TriggerEvent
from batchwire.triggers import TriggerSource

logger = logging.getLogger(__name__)


class RequestBuilder(Protocol):
    def build(self, event: TriggerEvent) -> JobLaunchRequest:
        ...


class TriggerFlow:
    """
    Wires a trigger source to the launch gateway through a request builder.

    Usage:
        flow = TriggerFlow(FileTrigger("dropfolder"), FileRequestBuilder(), gateway)
        executions = flow.tick()
    """

    def __init__(self, source: TriggerSource, builder: RequestBuilder, gateway: LaunchGateway):
        self.source = source
        self.builder = builder
        self.gateway = gateway

    @property
    def name(self) -> str:
        return self.source.name

    def tick(self) -> list[JobExecution]:
        """
        Poll once and launch a job per new event.

        Returns:
            Executions admitted during this tick
        """
        executions = []
        for event in self.source.poll():
            try:
                request = self.builder.build(event)
            except MalformedEventError as e:
                logger.warning(f"{self.name}: dropping event {event.payload!r}: {e}")
                continue
            try:
                executions.append(self.gateway.launch(request))
            except LaunchError as e:
                logger.error(f"{self.name}: launch of {request.job_name} failed: {e}")
        return executions
