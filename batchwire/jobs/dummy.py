"""dummyJob - two tasklets; the second reports the end_date parameter."""

import logging

from batchwire.builders import END_DATE_PARAMETER
from batchwire.schemas import Job, RepeatStatus, StepContext, TaskletStep

logger = logging.getLogger(__name__)

DUMMY_JOB = "dummyJob"


def dummy_tasklet(context: StepContext) -> RepeatStatus:
    logger.info("Dummy step executed")
    return RepeatStatus.FINISHED


def extract_tasklet(context: StepContext) -> RepeatStatus:
    end_date = context.get(END_DATE_PARAMETER)
    logger.info(f"Tasklet received date: {end_date}")
    return RepeatStatus.FINISHED


def build_dummy_job() -> Job:
    return Job(
        name=DUMMY_JOB,
        steps=(
            TaskletStep(name="dummyStep", action=dummy_tasklet),
            TaskletStep(name="extractStep", action=extract_tasklet),
        ),
    )
