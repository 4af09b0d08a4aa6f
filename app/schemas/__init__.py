from app.schemas.auth import (
    SendOTPRequest, VerifyOTPRequest, RefreshTokenRequest,
    SendOTPResponse, VerifyOTPResponse, TokensOut, AuthUserOut,
    UserProfileOut, MessageResponse,
)
