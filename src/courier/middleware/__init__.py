"""Ready-made pipeline stages."""

from courier.middleware.base_url import BaseUrl
from courier.middleware.form_urlencoded import (
    DecodeFormUrlencoded,
    EncodeFormUrlencoded,
    FormUrlencoded,
)
from courier.middleware.headers import Headers
from courier.middleware.json import JSON
from courier.middleware.logger import Logger
from courier.middleware.retry import Retry
from courier.middleware.status import RaiseOnStatus

__all__ = [
    "JSON",
    "BaseUrl",
    "DecodeFormUrlencoded",
    "EncodeFormUrlencoded",
    "FormUrlencoded",
    "Headers",
    "Logger",
    "RaiseOnStatus",
    "Retry",
]
