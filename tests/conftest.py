import pytest


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every requested delay"""

    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sleeps():
    return SleepRecorder()


@pytest.fixture
def retry_sleeps():
    return SleepRecorder()
