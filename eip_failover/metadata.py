"""EC2 instance metadata client"""

import requests
from typing import Dict, Optional
from .exceptions import MetadataError
from .models import InstanceIdentity


class MetadataService:
    """Client for the EC2 instance-identity document"""

    TOKEN_URL = "http://169.254.169.254/latest/api/token"
    IDENTITY_DOCUMENT_URL = "http://169.254.169.254/latest/dynamic/instance-identity/document"
    TOKEN_TTL_SECONDS = 60
    DEFAULT_TIMEOUT = 5

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize metadata service client

        Args:
            timeout: Request timeout in seconds
        """
        self.timeout = timeout

    def get_token(self) -> Optional[str]:
        """
        Get an IMDSv2 session token

        Returns:
            Token string, or None when the instance only offers IMDSv1
        """
        try:
            response = requests.put(
                self.TOKEN_URL,
                headers={"X-aws-ec2-metadata-token-ttl-seconds": str(self.TOKEN_TTL_SECONDS)},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException:
            return None
        return response.text.strip() or None

    def get_identity(self) -> InstanceIdentity:
        """
        Get the identity of the current instance

        Uses an IMDSv2 token when one can be obtained, plain IMDSv1 otherwise.

        Returns:
            InstanceIdentity built from the identity document

        Raises:
            MetadataError: If the metadata service is unavailable or returns
                an invalid document
        """
        headers: Dict[str, str] = {}
        token = self.get_token()
        if token:
            headers["X-aws-ec2-metadata-token"] = token

        try:
            response = requests.get(
                self.IDENTITY_DOCUMENT_URL, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.Timeout:
            raise MetadataError(
                "Timeout connecting to metadata service. "
                "Are you running this on an EC2 instance?"
            )
        except requests.exceptions.RequestException as e:
            raise MetadataError(f"Failed to connect to metadata service: {e}")

        try:
            document = response.json()
        except ValueError as e:
            raise MetadataError(f"Invalid identity document from metadata service: {e}")

        if not isinstance(document, dict):
            raise MetadataError("Invalid identity document: expected a JSON object")

        try:
            return InstanceIdentity.from_document(document)
        except KeyError as e:
            raise MetadataError(f"Identity document is missing field {e}")
