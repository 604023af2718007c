from signaling.models.call import Call, CallStatus, CallSide, IceCandidate, ActiveCallParticipant

__all__ = [
    "Call",
    "CallStatus",
    "CallSide",
    "IceCandidate",
    "ActiveCallParticipant"
]
