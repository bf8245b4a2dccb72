from decimal import Decimal


# ---------- CHOICES ----------

class Choices:
    TRAIN_TYPE_CHOICES = [
        ("Express", "Express"),
        ("Superfast", "Superfast"),
        ("Rajdhani", "Rajdhani"),
        ("Shatabdi", "Shatabdi"),
        ("Duronto", "Duronto"),
        ("Local", "Local"),
        ("Passenger", "Passenger"),
    ]

    CLASS_TYPE_CHOICES = [
        ("1A", "First AC"),
        ("2A", "Second AC"),
        ("3A", "Third AC"),
        ("CC", "Chair Car"),
        ("SL", "Sleeper"),
        ("2S", "Second Sitting"),
        ("GEN", "General"),
    ]

    WEEKDAYS = [
        "Monday",
        "Tuesday",
        "Wednesday",
        "Thursday",
        "Friday",
        "Saturday",
        "Sunday",
    ]

    BOOKING_STATUS_CHOICES = [
        ("Confirmed", "Confirmed"),
        ("RAC", "RAC"),
        ("Waiting List", "Waiting List"),
        ("Cancelled", "Cancelled"),
        ("Chart Prepared", "Chart Prepared"),
    ]

    PAYMENT_STATUS_CHOICES = [
        ("Pending", "Pending"),
        ("Completed", "Completed"),
        ("Failed", "Failed"),
        ("Refunded", "Refunded"),
    ]

    GENDER_CHOICES = [
        ("Male", "Male"),
        ("Female", "Female"),
        ("Other", "Other"),
    ]

    BERTH_PREFERENCE_CHOICES = [
        ("Lower", "Lower"),
        ("Middle", "Middle"),
        ("Upper", "Upper"),
        ("Side Lower", "Side Lower"),
        ("Side Upper", "Side Upper"),
        ("No Preference", "No Preference"),
    ]

    MEAL_PREFERENCE_CHOICES = [
        ("Vegetarian", "Vegetarian"),
        ("Non-Vegetarian", "Non-Vegetarian"),
        ("Jain", "Jain"),
        ("Vegan", "Vegan"),
        ("None", "None"),
    ]

    PAYMENT_METHOD_CHOICES = [
        ("CARD", "Card"),
        ("UPI", "UPI"),
    ]

    PAYMENT_STATUS_TRANSACTION_CHOICES = [
        ("INITIATED", "INITIATED"),
        ("SUCCESS", "SUCCESS"),
        ("FAILED", "FAILED"),
    ]


class BookingStatus:
    CONFIRMED = "Confirmed"
    RAC = "RAC"
    WAITING_LIST = "Waiting List"
    CANCELLED = "Cancelled"
    CHART_PREPARED = "Chart Prepared"


class PaymentStatus:
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"
    REFUNDED = "Refunded"


# ---------- FARE AND REFUND RULES ----------

class FareRules:
    TAX_RATE = Decimal("0.05")
    CONVENIENCE_FEE = 20
    DEFAULT_DISCOUNT = 0
    REWARD_RATE = Decimal("0.05")
    PNR_LENGTH = 10
    PAYMENT_SESSION_MINUTES = 15

    # (hours strictly greater than, refund fraction), checked top to bottom
    REFUND_TIERS = [
        (48, Decimal("0.90")),
        (12, Decimal("0.75")),
        (4, Decimal("0.50")),
    ]


class CacheKeys:
    TRAIN_VERSION = "trains:version"
    TRAIN_SEARCH = "trains:v{version}:search:{from_code}:{to_code}:{date}"
    STATIONS = "trains:v{version}:stations"
    SEARCH_TIMEOUT = 30 * 60
    STATIONS_TIMEOUT = 24 * 60 * 60


# ---------- USER MESSAGES ----------
class UserMessage:
    INVALID_CREDENTIALS = "Invalid username or password."
    USERNAME_TOO_SHORT = "Username must be at least 5 characters long."
    MOBILE_NUMBER_INVALID = "Please provide a valid Indian phone number (10 digits starting with 6-9)."
    PASSWORD_NOT_MATCH = "Passwords do not match."
    INSUFFICIENT_REWARD_POINTS = "Insufficient reward points."
    CURRENT_PASSWORD_INCORRECT = "Current password is incorrect."
    PASSWORD_CHANGED_SUCCESS = "Password changed successfully."
    LOGOUT_SUCCESS = "Successfully logged out."
    INVALID_REFRESH_TOKEN = "Refresh token is invalid or expired."


# ---------- UNIQUE FIELD CONFLICTS ----------
class AlreadyExistsMessage:
    EMAIL_ALREADY_EXISTS = "Email already exists."
    USERNAME_ALREADY_EXISTS = "Username already exists."
    MOBILE_ALREADY_EXISTS = "Mobile number already exists."


class GeneralMessage:
    INVALID_INPUT = "Invalid input provided."
    PERMISSION_DENIED = "You do not have permission to perform this action."
    SOMETHING_WENT_WRONG = "Something went wrong. Please try again later."


# ------------TRAIN CONSTANTS-------------
class TrainMessage:
    TRAIN_NOT_FOUND = "Train not found."
    STATION_NOT_FOUND = "Station {station_code} not found in route of train {train_number}."
    CLASS_UNAVAILABLE = "Class {class_type} not available on train {train_number}."
    TRAIN_NOT_RUNNING = "Train {train_number} does not run on {day_name}."
    SEARCH_PARAMS_REQUIRED = "Please provide from station, to station, and date."
    AVAILABILITY_PARAMS_REQUIRED = "Please provide date, from station, and to station."
    FARE_PARAMS_REQUIRED = "Please provide from station, to station, and class type."
    INVALID_DATE = "Date must be in YYYY-MM-DD format."
    ROUTE_NEEDS_TWO_STOPS = "Route must have at least two stops."
    ROUTE_DISTANCE_NOT_INCREASING = "Route stops must have strictly increasing distance from origin."
    INVALID_RUNNING_DAY = "Invalid running day: {day}."
    SEATS_EXCEED_TOTAL = "Available seats cannot exceed total seats."


# ----------- SEAT CONSTANTS -------------
class SeatMessage:
    INSUFFICIENT_SEATS = "Insufficient seats available."
    INVALID_SEAT_COUNT = "Seat count must be a positive integer."


# ----------- PAYMENT CONSTANTS -------------
class PaymentMessage:
    PAYMENT_FAILED = "Payment failed. Please try again or use a different payment method."
    PAYMENT_ALREADY_SUCCESS = "Payment already completed for this booking."
    PAYMENT_NOT_FOUND = "Payment not found."
    PAYMENT_SESSION_EXPIRED = "Payment session has expired. Please initiate payment again."
    PAYMENT_NOT_PAYABLE = "Booking not found or payment already processed."
    INVALID_PAYMENT_METHOD = "Invalid payment method (Only Card and UPI)."
    INVALID_CARD_DETAILS = "Invalid card details."
    UPI_UNAVAILABLE = "UPI payment is currently under development. Please use card payment."
    NO_REFUND_AVAILABLE = "No refund available for this booking."
    CANCELLED_BOOKING_NOT_PAYABLE = "Cancelled bookings cannot be paid."


class BookingMessage:
    BOOKING_NOT_FOUND = "Booking not found."
    BOOKING_NOT_FOUND_WITH_PNR = "Booking not found with this PNR."
    ALREADY_CANCELLED = "Booking is already cancelled."
    PAYMENT_NOT_COMPLETED = "Cannot cancel booking with pending payment."
    CANNOT_MODIFY_CANCELLED = "Cannot modify cancelled booking."
    NO_VALID_UPDATE_FIELDS = "No valid fields provided for update."
    FROM_AND_TO_MUST_BE_DIFFERENT = "From and To station codes must be different."
    JOURNEY_DATE_IN_PAST = "Journey date cannot be in the past."
    PASSENGER_COUNT_INVALID = "Between 1 and {max_passengers} passengers are allowed per booking."
    PASSENGER_NAME_INVALID = "Passenger name should only contain letters and spaces."
    NO_PASSENGERS = "At least one passenger is required."
    ADMIN_CANNOT_CREATE_BOOKING = "Admin users cannot create bookings."
    UPDATE_NOT_ALLOWED = "Ticket update is not allowed. Only contact details and special requests can be changed."
    DELETE_NOT_ALLOWED = "Bookings cannot be deleted. Use the cancel endpoint instead."
    DEFAULT_CANCEL_REASON = "User requested"
