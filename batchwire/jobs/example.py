"""exampleJob - prints every line of the file named by the file_path parameter."""

from batchwire.builders import FILE_PATH_PARAMETER
from batchwire.items import EchoItemWriter, LineFileReader
from batchwire.schemas import ChunkStep, Job, StepContext

EXAMPLE_JOB = "exampleJob"


def file_reader(context: StepContext) -> LineFileReader:
    path = context.get(FILE_PATH_PARAMETER)
    if not path:
        raise ValueError(f"Missing job parameter: {FILE_PATH_PARAMETER}")
    return LineFileReader(path)


def build_example_job(chunk_size: int = 5) -> Job:
    return Job(
        name=EXAMPLE_JOB,
        steps=(
            ChunkStep(
                name="exampleStep",
                chunk_size=chunk_size,
                reader=file_reader,
                writer=lambda context: EchoItemWriter(),
            ),
        ),
    )
