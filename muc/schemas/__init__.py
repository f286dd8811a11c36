"""
muc.schemas
~~~~~~~~~~~
Pydantic models: stanzas exchanged with the transport, room operation
results, and HTTP response bodies.
"""
from muc.schemas.api_response import ApiResponse
from muc.schemas.rooms import ParticipantData, RoomInfoData, RosterData

# Call model_rebuild to resolve forward references in generic Pydantic models.
ApiResponse.model_rebuild()
