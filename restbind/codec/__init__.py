from restbind.codec.json_codec import JsonCodec
from restbind.codec.naming import NamingConvention
from restbind.codec.policy import DEFAULT_DATE_FORMAT, SerializationPolicy
from restbind.codec.protocol import Codec

__all__ = [
    "Codec",
    "DEFAULT_DATE_FORMAT",
    "JsonCodec",
    "NamingConvention",
    "SerializationPolicy",
]
