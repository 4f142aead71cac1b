import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from doctor_booking.core import config
from doctor_booking.database import Base, engine, ensure_booking_schema
from doctor_booking.models import availability, booking, notification, user  # noqa: F401
from doctor_booking.routes import availability_routes, booking_routes, doctor_routes, notification_routes

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = FastAPI(title='Doctor Booking API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_booking_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Doctor Booking API Running'}


app.include_router(availability_routes.router, prefix='/availability')
app.include_router(booking_routes.router, prefix='/bookings')
app.include_router(doctor_routes.router, prefix='/doctors')
app.include_router(notification_routes.router, prefix='/notifications')


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(
        'doctor_booking.main:app',
        host=config.HOST,
        port=config.PORT,
    )
