"""CloudFormation stack output lookup.

The stack itself is created and deleted elsewhere; this module only reads
its outputs to find the FSx endpoint a workflow should mount.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING

from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from fsxmodels.constants import (
    DEFAULT_REGION,
    DEFAULT_STACK_NAME,
    STACK_OUTPUT_DNS,
    STACK_OUTPUT_MOUNT_NAME,
)
from fsxmodels.exceptions import ConfigurationError

if TYPE_CHECKING:
    from mypy_boto3_cloudformation import CloudFormationClient


@dataclass(frozen=True, slots=True)
class StackEndpoint:
    """FSx endpoint published by a stack."""

    stack_name: str
    dns_name: str
    mount_name: str | None = None


class StackOutputs:
    """Reads outputs of an existing CloudFormation stack."""

    def __init__(
        self,
        stack_name: str = DEFAULT_STACK_NAME,
        region: str = DEFAULT_REGION,
        client: CloudFormationClient | None = None,
    ) -> None:
        self.stack_name = stack_name
        self.region = region
        self._client = client

    @cached_property
    def _cfn(self) -> CloudFormationClient:
        if self._client is not None:
            return self._client
        import boto3

        return boto3.client("cloudformation", region_name=self.region)

    def outputs(self) -> dict[str, str]:
        """All outputs of the stack, keyed by OutputKey.

        Raises:
            ConfigurationError: If the stack does not exist or AWS cannot be
                reached with the current credentials.
        """
        try:
            response = self._cfn.describe_stacks(StackName=self.stack_name)
        except ClientError as e:
            raise ConfigurationError(
                f"Stack {self.stack_name} not found in {self.region}: {e}"
            ) from e
        except BotoCoreError as e:
            raise ConfigurationError(
                f"Cannot read stack {self.stack_name} in {self.region}: {e}"
            ) from e

        stacks = response.get("Stacks", [])
        if not stacks:
            raise ConfigurationError(f"Stack {self.stack_name} not found in {self.region}")

        stack = stacks[0]
        logger.debug(f"Stack {self.stack_name} status: {stack.get('StackStatus', 'UNKNOWN')}")
        return {
            o["OutputKey"]: o["OutputValue"]
            for o in stack.get("Outputs", [])
            if "OutputKey" in o and "OutputValue" in o
        }

    def endpoint(
        self,
        dns_key: str = STACK_OUTPUT_DNS,
        mount_name_key: str = STACK_OUTPUT_MOUNT_NAME,
    ) -> StackEndpoint:
        """FSx DNS and mount name from the stack outputs.

        Raises:
            ConfigurationError: If the stack has no ``dns_key`` output.
        """
        outputs = self.outputs()
        dns = outputs.get(dns_key, "").strip()
        if not dns:
            raise ConfigurationError(
                f"Stack {self.stack_name} has no '{dns_key}' output. "
                f"Available: {', '.join(sorted(outputs)) or 'none'}"
            )
        mount_name = outputs.get(mount_name_key) or None
        logger.info(f"Resolved FSx endpoint {dns} from stack {self.stack_name}")
        return StackEndpoint(stack_name=self.stack_name, dns_name=dns, mount_name=mount_name)
