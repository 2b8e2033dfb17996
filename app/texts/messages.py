"""User-facing texts."""

# Notices and errors raised by the workflow.
MISSING_FIELDS_TITLE = "Missing Information"
MISSING_FIELDS_TEXT = "Please fill in all measurement fields"
INVALID_NUMBER_TITLE = "Invalid Measurement"
INVALID_NUMBER_TEXT = "Measurements must be positive numbers: {fields}"
MEASUREMENTS_SAVED_TITLE = "Measurements Saved!"
MEASUREMENTS_SAVED_TEXT = "Your measurements have been stored successfully"

NO_IMAGE_TITLE = "No image selected"
NO_IMAGE_TEXT = "Please select an image to upload"
NOT_AN_IMAGE_TITLE = "Unsupported file"
NOT_AN_IMAGE_TEXT = "Please select a JPG, PNG or other image file"
FILE_TOO_LARGE_TITLE = "File too large"
FILE_TOO_LARGE_TEXT = "Please select an image smaller than {limit_mb}MB"
IMAGE_UPLOADED_TITLE = "Image uploaded successfully!"
IMAGE_UPLOADED_TEXT = "Your image has been processed and is ready for try-on"

PRODUCT_REQUIRED_TITLE = "Product URL required"
PRODUCT_REQUIRED_TEXT = "Please enter a product URL or upload an image"
TRY_ON_COMPLETE_TITLE = "Try-on complete!"
TRY_ON_COMPLETE_TEXT = "Your virtual try-on has been processed successfully"

MISSING_PROFILE_TITLE = "Missing data"
MISSING_PROFILE_TEXT = "Please complete measurements and upload your photo first"
MISSING_MEASUREMENTS_TITLE = "Measurements needed"
MISSING_MEASUREMENTS_TEXT = "Please enter your measurements before uploading a photo"
MISSING_TRY_ON_TITLE = "No try-on data found"
MISSING_TRY_ON_TEXT = "Please complete the virtual try-on first"

BUSY_TITLE = "Still processing"
BUSY_TEXT = "Please wait until the current step finishes"
SESSION_RESET_TITLE = "Session cleared"
SESSION_RESET_TEXT = "All measurements, photos and results were removed"

# Recommendation sentences used by the fit analysis rules.
RECOMMENDATIONS = {
    ("waist", "tight"): "Consider sizing up for a more comfortable fit around the waist",
    ("waist", "loose"): "A belt or a smaller size will tidy up the waist",
    ("waist", "perfect"): "The waist sits exactly where it should",
    ("chest", "perfect"): "The chest area fits perfectly according to your measurements",
    ("chest", "tight"): "The chest may feel restrictive; try one size up",
    ("chest", "loose"): "The chest has extra room; a smaller size may look sharper",
    ("length", "perfect"): "Length is ideal for your height",
    ("length", "long"): "The garment runs long for your height; consider a petite cut",
    ("length", "short"): "The garment runs short for your height; consider a tall cut",
}
RECOMMENDATION_BY_OVERALL = {
    "perfect": "This style complements your body proportions well",
    "good": "This style complements your body proportions well",
    "loose": "A relaxed look overall; size down for a closer fit",
    "tight": "A snug look overall; size up for everyday comfort",
}

# Telegram presentation.
HOME_TEXT = (
    "<b>Virtual Fit</b>\n"
    "Try clothes on virtually in three steps:\n"
    "1. Enter your measurements\n"
    "2. Upload a full-body photo\n"
    "3. Pick a garment and get a fit analysis"
)
START_BUTTON = "Get Started"
MEASUREMENTS_PROMPT = (
    "<b>Your Measurements</b>\n"
    "Send six numbers in this order: height (cm), weight (kg), chest, waist, "
    "hips, shoulders (cm).\n"
    "Example: <code>170 65 90 75 95 40</code>\n"
    "Or name them: <code>height=170, weight=65, ...</code>"
)
MEASUREMENTS_STORED_LINE = "Saved: {summary}"
UPLOAD_PROMPT = (
    "<b>Upload Your Photo</b>\n"
    "Send a full-body photo (JPG, PNG up to {limit_mb}MB).\n"
    "Tips: stand straight, use good lighting, wear form-fitting clothes, "
    "choose a plain background."
)
UPLOAD_SELECTED_LINE = "Selected: {content_type}, {size_kb} KB"
TRY_ON_PROMPT = (
    "<b>Virtual Try-On</b>\n"
    "Height: {height} cm, Chest: {chest} cm\n"
    "Paste a product URL or pick a sample below."
)
TRY_ON_PROCESSING = "Processing Virtual Try-On... AI is overlaying the garment on your photo"
UPLOAD_PROCESSING = "Processing your photo..."
ANALYZING_TEXT = "Analyzing fit... Our AI is analyzing how the garment fits your body measurements"
FIT_RESULT_TEXT = (
    "<b>Fit Analysis</b>\n"
    "Product: {product}\n"
    "Overall Fit: {overall}\n"
    "Confidence: {confidence}%\n"
    "Chest: {chest}\nWaist: {waist}\nLength: {length}\n\n"
    "<b>Recommendations</b>\n{recommendations}"
)
NOTICE_LINE = "<b>{title}</b>: {description}"
ERROR_LINE = "⚠️ <b>{title}</b>: {description}"

BACK_BUTTON = "Back"
HOME_BUTTON = "Start Over"
TRY_ANOTHER_BUTTON = "Try Another Item"
RESET_BUTTON = "Clear my data"
UPLOAD_CONTINUE_BUTTON = "Continue to Upload"

UNKNOWN_PAGE_TITLE = "Page not found"
UNKNOWN_PAGE_TEXT = "There is no step at {path}"
PROCESSING_FAILED_TITLE = "Processing failed"
PROCESSING_FAILED_TEXT = "Something went wrong, please try again"
