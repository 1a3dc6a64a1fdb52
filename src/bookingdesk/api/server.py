#!/usr/bin/env python3
"""
BookingDesk HTTP API.

Chat endpoint backed by the conversation engine, plus booking, payment,
user, review and amenity endpoints over the local ledger.

Run:
    bookingdesk-server

Configuration is read from the environment (and a local ``.env`` file).
"""

import logging
import time
from datetime import datetime

from dotenv import load_dotenv
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from bookingdesk.core.models import Amenity, BookingDeskConfig, Review, User, utcnow
from bookingdesk.services import Services, build_services
from bookingdesk.utils.exceptions import (
    BookingDeskError,
    BookingUpstreamFailure,
    ChatProcessingFailed,
    NotFound,
    Unauthenticated,
    ValidationFailure,
)
from bookingdesk.utils.logging import setup_logging

logger = logging.getLogger(__name__)


# =============================================================================
# Request Models
# =============================================================================

class ChatRequest(BaseModel):
    userId: str | None = None
    message: str | None = None


class BookRequest(BaseModel):
    roomId: int
    fullName: str
    email: str
    nights: int
    userId: str | None = Field(default=None, description="Owner of the booking; defaults to email")


class PaymentRequest(BaseModel):
    bookingId: str
    amount: float
    method: str = Field(..., description="credit_card, debit_card or paypal")


class UpdateBookingRequest(BaseModel):
    roomId: int | None = None
    checkInDate: datetime | None = None
    checkOutDate: datetime | None = None


class CancelBookingRequest(BaseModel):
    bookingId: str
    userId: str


class RegisterRequest(BaseModel):
    userId: str
    fullName: str | None = None
    email: str | None = None


class UpdateUserRequest(BaseModel):
    fullName: str | None = None
    email: str | None = None


class ReviewRequest(BaseModel):
    userId: str | None = None
    bookingId: str
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


class AmenityRequest(BaseModel):
    amenityId: str
    name: str
    description: str = ""


class UpdateAmenityRequest(BaseModel):
    name: str | None = None
    description: str | None = None


def get_services(request: Request) -> Services:
    return request.app.state.services


router = APIRouter()


# =============================================================================
# Chat
# =============================================================================

@router.post("/chat", tags=["Chat"], summary="Send a chat message")
def chat(body: ChatRequest, services: Services = Depends(get_services)):
    if not body.userId:
        raise Unauthenticated("userId is required")
    result = services.engine.handle_turn(body.userId, body.message or "")
    return {"messages": [t.to_json() for t in result.messages]}


@router.get("/conversations/{user_id}", tags=["Chat"], summary="Get a user's conversation")
def get_conversations(user_id: str, services: Services = Depends(get_services)):
    conversation = services.engine.get_conversation(user_id)
    if conversation is None:
        return []
    return [{
        "userId": conversation.user_id,
        "messages": [t.to_json() for t in conversation.messages],
    }]


# =============================================================================
# Bookings
# =============================================================================

@router.post("/book", tags=["Bookings"], summary="Book a room")
def book_room(body: BookRequest, services: Services = Depends(get_services)):
    outcome = services.orchestrator.book(
        room_id=body.roomId,
        full_name=body.fullName,
        email=body.email,
        nights=body.nights,
        user_id=body.userId,
    )
    return outcome.payload


@router.get("/bookings/{user_id}", tags=["Bookings"], summary="Bookings owned by a user")
def list_user_bookings(user_id: str, services: Services = Depends(get_services)):
    return [b.to_json() for b in services.orchestrator.list_bookings_for_user(user_id)]


@router.get("/bookings-by-room/{room_id}", tags=["Bookings"], summary="Bookings for a room")
def list_room_bookings(room_id: int, services: Services = Depends(get_services)):
    return [b.to_json() for b in services.orchestrator.list_bookings_for_room(room_id)]


@router.get("/bookings-in-range", tags=["Bookings"], summary="Bookings by check-in date")
def list_bookings_in_range(
    startDate: str = Query(..., description="First check-in date, YYYY-MM-DD (inclusive)"),
    endDate: str = Query(..., description="Last check-in date, YYYY-MM-DD (inclusive)"),
    services: Services = Depends(get_services),
):
    bookings = services.orchestrator.get_bookings_in_range(startDate, endDate)
    return [b.to_json() for b in bookings]


@router.get("/booking-details/{booking_id}", tags=["Bookings"], summary="Get a booking")
def get_booking(booking_id: str, services: Services = Depends(get_services)):
    return services.orchestrator.get_booking(booking_id).to_json()


@router.put("/update-booking/{booking_id}", tags=["Bookings"], summary="Change room or dates")
def update_booking(
    booking_id: str,
    body: UpdateBookingRequest,
    services: Services = Depends(get_services),
):
    booking = services.orchestrator.update_booking(booking_id, body.model_dump(exclude_none=True))
    return {"message": "Booking updated successfully", "booking": booking.to_json()}


@router.delete("/delete-booking/{booking_id}", tags=["Bookings"], summary="Delete a booking")
def delete_booking(booking_id: str, services: Services = Depends(get_services)):
    services.orchestrator.delete_booking(booking_id)
    return {"message": "Booking deleted successfully"}


@router.post("/cancel-booking", tags=["Bookings"], summary="Cancel an owned booking")
def cancel_booking(body: CancelBookingRequest, services: Services = Depends(get_services)):
    services.orchestrator.cancel_booking(body.bookingId, body.userId)
    return {"message": "Booking canceled successfully"}


# =============================================================================
# Payments
# =============================================================================

@router.post("/process-payment", tags=["Payments"], summary="Pay for a booking")
def process_payment(body: PaymentRequest, services: Services = Depends(get_services)):
    result = services.payments.process_payment(body.bookingId, body.amount, body.method)
    return result.to_json()


@router.get("/payments/{booking_id}", tags=["Payments"], summary="Payment attempts for a booking")
def list_payments(booking_id: str, services: Services = Depends(get_services)):
    return [a.to_json() for a in services.payments.list_attempts(booking_id)]


# =============================================================================
# Users
# =============================================================================

@router.post("/register", tags=["Users"], summary="Register a user")
def register(body: RegisterRequest, services: Services = Depends(get_services)):
    user = User(
        user_id=body.userId,
        full_name=body.fullName,
        email=body.email,
        last_interaction=utcnow(),
    )
    return services.ledger.users.add(user).to_json()


@router.get("/users", tags=["Users"], summary="List users")
def list_users(services: Services = Depends(get_services)):
    return [u.to_json() for u in services.ledger.users.list_all()]


@router.put("/update-user/{user_id}", tags=["Users"], summary="Update a user")
def update_user(user_id: str, body: UpdateUserRequest, services: Services = Depends(get_services)):
    user = services.ledger.users.get(user_id)
    if user is None:
        raise NotFound(f"User not found: {user_id}")
    changes = {"full_name": body.fullName, "email": body.email}
    services.ledger.users.save(user.model_copy(update={k: v for k, v in changes.items() if v is not None}))
    return {"message": "User updated successfully"}


# =============================================================================
# Reviews
# =============================================================================

@router.post("/add-review", tags=["Reviews"], summary="Review a booking")
def add_review(body: ReviewRequest, services: Services = Depends(get_services)):
    if not body.userId:
        raise Unauthenticated("userId is required")
    review = Review(
        review_id=services.id_generator.new_id("REV-"),
        booking_id=body.bookingId,
        user_id=body.userId,
        rating=body.rating,
        comment=body.comment,
    )
    return services.ledger.reviews.add(review).to_json()


@router.get("/reviews/{booking_id}", tags=["Reviews"], summary="Reviews for a booking")
def list_booking_reviews(booking_id: str, services: Services = Depends(get_services)):
    return [r.to_json() for r in services.ledger.reviews.list_by_booking(booking_id)]


@router.get("/reviews-by-user/{user_id}", tags=["Reviews"], summary="Reviews written by a user")
def list_user_reviews(user_id: str, services: Services = Depends(get_services)):
    return [r.to_json() for r in services.ledger.reviews.list_by_user(user_id)]


# =============================================================================
# Amenities
# =============================================================================

@router.post("/amenities", tags=["Amenities"], summary="Add an amenity")
def add_amenity(body: AmenityRequest, services: Services = Depends(get_services)):
    amenity = Amenity(amenity_id=body.amenityId, name=body.name, description=body.description)
    return services.ledger.amenities.add(amenity).to_json()


@router.get("/amenities", tags=["Amenities"], summary="List amenities")
def list_amenities(services: Services = Depends(get_services)):
    return [a.to_json() for a in services.ledger.amenities.list_all()]


@router.put("/amenities/{amenity_id}", tags=["Amenities"], summary="Update an amenity")
def update_amenity(
    amenity_id: str,
    body: UpdateAmenityRequest,
    services: Services = Depends(get_services),
):
    amenity = services.ledger.amenities.get(amenity_id)
    if amenity is None:
        raise NotFound(f"Amenity not found: {amenity_id}")
    changes = {k: v for k, v in {"name": body.name, "description": body.description}.items() if v is not None}
    amenity = services.ledger.amenities.save(amenity.model_copy(update=changes))
    return {"message": "Amenity updated successfully", "amenity": amenity.to_json()}


@router.delete("/amenities/{amenity_id}", tags=["Amenities"], summary="Delete an amenity")
def delete_amenity(amenity_id: str, services: Services = Depends(get_services)):
    if not services.ledger.amenities.delete(amenity_id):
        raise NotFound(f"Amenity not found: {amenity_id}")
    return {"message": "Amenity deleted successfully"}


# =============================================================================
# App
# =============================================================================

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def register_error_handlers(app: FastAPI) -> None:
    """Map domain exceptions to status codes; upstream causes are logged, not returned."""

    @app.exception_handler(Unauthenticated)
    async def handle_unauthenticated(request: Request, exc: Unauthenticated):
        return _error(401, "Unauthorized")

    @app.exception_handler(ValidationFailure)
    async def handle_validation(request: Request, exc: ValidationFailure):
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        fields = ", ".join(".".join(str(p) for p in err["loc"][1:]) for err in exc.errors())
        return _error(400, f"Invalid or missing fields: {fields}")

    @app.exception_handler(NotFound)
    async def handle_not_found(request: Request, exc: NotFound):
        return _error(404, str(exc))

    @app.exception_handler(BookingUpstreamFailure)
    async def handle_upstream(request: Request, exc: BookingUpstreamFailure):
        logger.error("Booking failed on %s: %s", request.url.path, exc)
        return _error(500, "Error booking room")

    @app.exception_handler(ChatProcessingFailed)
    async def handle_chat_failure(request: Request, exc: ChatProcessingFailed):
        logger.error("Chat failed: %s", exc.__cause__ or exc)
        return _error(500, "Error processing chat")

    @app.exception_handler(BookingDeskError)
    async def handle_other(request: Request, exc: BookingDeskError):
        logger.error("Unhandled error on %s: %s", request.url.path, exc)
        return _error(500, "Internal server error")


def create_app(services: Services) -> FastAPI:
    """Create the FastAPI application around ``services``."""
    app = FastAPI(
        title="BookingDesk",
        description="Conversational hotel booking assistant with booking and payment ledger.",
        version="0.1.0",
    )
    app.state.services = services

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method, request.url.path, response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    register_error_handlers(app)
    app.include_router(router)
    return app


def main():
    """Run the API server."""
    import uvicorn

    load_dotenv()
    config = BookingDeskConfig.from_env()
    setup_logging(config.log_level, config.log_file)
    services = build_services(config)

    logger.info("Inventory service: %s", config.inventory_url)
    logger.info("Model: %s", config.model)
    try:
        uvicorn.run(create_app(services), host=config.host, port=config.port)
    finally:
        services.close()


if __name__ == "__main__":
    main()
