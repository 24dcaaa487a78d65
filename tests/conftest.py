import logging
import os
import platform
import subprocess
from collections.abc import Iterator
from contextlib import contextmanager
from time import sleep

from docker import DockerClient
from docker.models.containers import Container

logger = logging.getLogger(__name__)

logging.basicConfig(level=logging.INFO)


def get_docker_client() -> DockerClient:
    return DockerClient.from_env()


def docker_logs(name: str, print_logs: bool = False, log_level: int = logging.INFO) -> list[str]:
    try:
        logs: list[str] = get_docker_client().containers.get(name).logs().decode("utf-8").splitlines()
    except Exception:
        logger.info(f"Container {name} failed to get logs")
        return []

    if print_logs:
        logger.info(f"Container {name} logs:")
        for log in logs:
            logger.log(log_level, log)

    return logs


def docker_get(name: str) -> Container | None:
    from docker.errors import NotFound

    try:
        return get_docker_client().containers.get(name)
    except NotFound:
        return None


def docker_stop_and_remove(name: str) -> None:
    if not (container := docker_get(name=name)):
        return

    logger.info(f"Removing container {name}")
    try:
        container.stop()
        container.remove()
    except Exception:
        logger.info(f"Container {name} failed to stop or remove")


def docker_wait_container_gone(name: str, max_tries: int = 10, wait_time: float = 1.0) -> bool:
    for _ in range(max_tries):
        if not docker_get(name=name):
            return True
        sleep(wait_time)
    return False


@contextmanager
def docker_container(name: str, image: str, ports: dict[str, int], environment: dict[str, str] | None = None) -> Iterator[None]:
    logger.info(f"Creating container {name} with image {image} and ports {ports}")
    client = get_docker_client()

    client.images.pull(image)
    docker_stop_and_remove(name=name)
    _ = docker_wait_container_gone(name=name)

    try:
        client.containers.run(name=name, image=image, ports=ports, environment=environment or {}, detach=True)
        logger.info(f"Container {name} running")
        yield
    except Exception:
        docker_logs(name, print_logs=True, log_level=logging.ERROR)
        raise
    finally:
        docker_stop_and_remove(name=name)


def detect_docker() -> bool:
    try:
        result = subprocess.run(["docker", "ps"], check=False, capture_output=True, text=True)
    except Exception:
        return False
    else:
        return result.returncode == 0


def detect_on_ci() -> bool:
    return os.getenv("CI", "false") == "true"


def should_run_docker_tests() -> bool:
    if detect_on_ci():
        return detect_docker() and platform.system() == "Linux"
    return detect_docker()


def should_skip_docker_tests() -> bool:
    return not should_run_docker_tests()
