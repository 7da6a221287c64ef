from fastapi import APIRouter, HTTPException, Request, status

from gift_reveal.core.cipher import CipherError, xor_decrypt
from gift_reveal.core.rate_limit import check_rate_limit
from gift_reveal.schemas.home import DecryptRequest, DecryptResponse


router = APIRouter(prefix="/cipher", tags=["cipher"])


@router.post("/decrypt", response_model=DecryptResponse)
async def decrypt(payload: DecryptRequest, request: Request) -> DecryptResponse:
    check_rate_limit(request, key_suffix="cipher")
    try:
        text = xor_decrypt(payload.encrypted_text, payload.key)
    except CipherError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return DecryptResponse(text=text)
