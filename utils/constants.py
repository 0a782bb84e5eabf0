"""
utils/constants.py

Purpose: Centralized static content

- All user-facing SMS texts (kept short: one SMS segment where possible)
- Command guide and invalid-command hints
- Priorities and shared constants

(Prevents hardcoding across the codebase)
"""

# ============================================================
# ONBOARDING & PIN SETUP
# ============================================================

WELCOME_MESSAGE = "Welcome to SMS Wallet! Reply SET PIN 1234 (choose your own 4 digits) to secure your wallet."

PIN_SET_SUCCESS_MESSAGE = "Your PIN is set. Send HELP anytime to see payment commands."

PIN_SETUP_REQUIRED_MESSAGE = "Please set a PIN first. Reply SET PIN followed by 4 digits, e.g. SET PIN 4821."

PIN_CHANGE_NOT_ALLOWED_MESSAGE = "You can't change your PIN while a transaction is waiting. Reply RESET to cancel it first."

# ============================================================
# OTP / PIN CHALLENGE
# ============================================================

OTP_MESSAGE = "Your SMS Wallet OTP is {otp}. Valid for {minutes} minutes. Never share it."

OTP_REPLY_PROMPT = "Reply OTP <code> to continue."

PIN_PROMPT_MESSAGE = "Then enter your 4-digit PIN to confirm."

OTP_VERIFIED_MESSAGE = "OTP verified. Enter your 4-digit PIN to confirm."

OTP_EXPIRED_MESSAGE = "Your OTP expired. Send your command again to receive a new OTP."

OTP_INCORRECT_MESSAGE = "Incorrect OTP. Check the code and reply OTP <code> again."

OTP_TOO_MANY_ATTEMPTS_MESSAGE = "Too many incorrect OTPs. Your pending request was cancelled. Send the command again to start over."

OTP_NOT_PENDING_MESSAGE = "There is no OTP pending. Send a command such as PAY first."

OTP_FIRST_MESSAGE = "Please reply with the OTP first (OTP <code>), then your PIN."

NOTHING_TO_CONFIRM_MESSAGE = "There is nothing waiting for your PIN. Send HELP to see commands."

PIN_INCORRECT_MESSAGE = "Incorrect PIN. {attempts_left} {attempts_word} left before lockout."

AUTH_FAILED_MESSAGE = "Verification failed. Send your command again to get a new OTP."

ACCOUNT_LOCKED_MESSAGE = "Too many failed attempts. Your account is locked. Reply RESET to regain access."

RESET_MESSAGE = "Your session was reset. Any pending request was cancelled."

SESSION_RECOVERED_MESSAGE = "Your previous request could not be found and was cancelled. Please send it again."

# ============================================================
# ERRORS
# ============================================================

INVALID_COMMAND_TEMPLATE = "We couldn't understand that command. {hint} Reply HELP for the full list."

EXECUTION_FAILED_TEMPLATE = "{action} failed. Reply HELP for support."

SOMETHING_WENT_WRONG_MESSAGE = "Something went wrong on our side. Please try again in a moment or reply HELP."

WALLET_UNAVAILABLE_TEMPLATE = "{action} is not available right now. Nothing was charged. Please try again later."

# Friendly names for failure replies
COMMAND_ACTION_NAMES = {
    "PAY": "Payment",
    "SELL": "Sell request",
    "BALANCE": "Balance check",
    "STATUS": "Status check",
    "ACCEPT_LOAN": "Loan acceptance",
    "RETRY": "Retry",
    "MERCHANT_REGISTER": "Merchant registration",
    "MERCHANT_REQUEST_PAYMENT": "Payment request",
    "MERCHANT_REPORT": "Merchant report",
    "CLUB_CREATE": "Club creation",
    "CLUB_DEPOSIT": "Club deposit",
    "CLUB_PROPOSE_PAYOUT": "Payout proposal",
    "CLUB_VOTE": "Vote",
}

# ============================================================
# HELP
# ============================================================

HELP_MESSAGE = """SMS Wallet commands:
PAY 500 INR to +919876543210
BALANCE | STATUS | SELL 10
ACCEPT (loan offer)
REGISTER MERCHANT <store>
REQUEST 200 INR from <phone> for <note>
REPORT
CREATE CLUB 'Name' with <phone>, <phone>
CLUB DEPOSIT 50 to 'Name'
PROPOSE PAYOUT 100 to <phone> from 'Name'
VOTE YES on <id> for 'Name'
SET PIN 1234 | RESET"""

INVALID_COMMAND_HINTS = [
    "Try PAY 500 INR to +919876543210.",
    "Text HELP to see all commands.",
    "Use REPORT for merchant summaries.",
    "Use PROPOSE PAYOUT 2500 to +91... from 'Club'.",
]

# ============================================================
# DOMAIN REPLIES
# ============================================================

PAYMENT_SUBMITTED_MESSAGE = "Payment of {amount} {currency} to {recipient} submitted. Ref: {reference}"

PAYMENT_INCOMING_MESSAGE = "You are receiving {amount} {currency} from {sender}. Ref: {reference}"

SELL_SUBMITTED_MESSAGE = "Sell order for {amount} {currency} accepted. Ref: {reference}"

BALANCE_MESSAGE = "Balance: {balance} {currency}\nWallet: {wallet}"

STATUS_MESSAGE = """Account status
Phone: {phone}
PIN set: {pin_set}
Wallet: {wallet}
Session: {session}"""

LOAN_ACCEPTED_MESSAGE = "Loan accepted. Ref: {reference}"

RETRY_MESSAGE = "Transaction {transaction_id}: {status}."

MERCHANT_REGISTERED_MESSAGE = "Merchant registered: {name}. You can now REQUEST payments from customers."

MERCHANT_PAYMENT_REQUEST_MESSAGE = "{merchant} requests {amount} {currency}{note}. Reply PAY {amount} {currency} to {merchant_phone} to pay."

MERCHANT_REQUEST_SENT_MESSAGE = "Payment request for {amount} {currency} sent to {customer}."

MERCHANT_REPORT_MESSAGE = "Today's report: {summary}"

CLUB_CREATED_MESSAGE = "Savings Club '{name}' created with {members} members."

CLUB_INVITE_MESSAGE = "{creator} added you to Savings Club '{name}'. Reply HELP to see club commands."

CLUB_DEPOSIT_MESSAGE = "Deposit of {amount} {currency} to '{name}' submitted. Ref: {reference}"

CLUB_PROPOSAL_MESSAGE = "Payout proposal {proposal_id} for '{name}': {amount} to {recipient}. Members reply VOTE YES on {proposal_id} for '{name}' or VOTE NO."

CLUB_VOTE_MESSAGE = "Your vote '{vote}' on {proposal_id} for '{name}' is recorded."


def invalid_command_message(hint: str) -> str:
    """Renders the generic parse-failure reply around a hint."""
    return INVALID_COMMAND_TEMPLATE.format(hint=hint.strip())


def execution_failed_message(command_type: str) -> str:
    """Renders the generic failure reply for a command type."""
    action = COMMAND_ACTION_NAMES.get(command_type, "Your request")
    return EXECUTION_FAILED_TEMPLATE.format(action=action)


def wallet_unavailable_message(command_type: str) -> str:
    """Reply when no wallet backend is configured."""
    action = COMMAND_ACTION_NAMES.get(command_type, "Your request")
    return WALLET_UNAVAILABLE_TEMPLATE.format(action=action)


def pin_incorrect_message(attempts_left: int) -> str:
    return PIN_INCORRECT_MESSAGE.format(
        attempts_left=attempts_left,
        attempts_word="attempt" if attempts_left == 1 else "attempts",
    )
