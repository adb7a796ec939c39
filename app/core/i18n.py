"""English/Arabic message catalog for API responses."""

from fastapi import Request

SUPPORTED_LANGUAGES = ("en", "ar")
DEFAULT_LANGUAGE = "en"

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        # generic
        "errors.validation": "Validation error",
        "errors.conflict": "A record with this {field} already exists",
        "errors.not_found": "Resource not found",
        "errors.permission": "Permission denied",
        "errors.internal": "Internal server error",
        "errors.unauthorized": "Authentication required",
        "errors.email_failed": "We could not send the email. Please try again later.",
        "errors.rate_limited": "Too many requests, please try again later",
        # auth
        "auth.signup_success": "Account created. Please check your email to verify your account.",
        "auth.login_success": "Login successful",
        "auth.logout_success": "Logged out successfully",
        "auth.email_exists": "An account with this email already exists",
        "auth.username_exists": "This username is already taken",
        "auth.invalid_credentials": "Invalid email or password",
        "auth.use_google_login": "This account uses Google sign-in. Please log in with Google.",
        "auth.account_locked": "Account temporarily locked due to too many failed login attempts",
        "auth.email_not_verified": "Please verify your email. A new verification link has been sent.",
        "auth.account_inactive": "Your account is inactive",
        "auth.token_required": "Authentication token is required",
        "auth.invalid_token": "Invalid token",
        "auth.token_expired": "Token has expired",
        "auth.refresh_invalid": "Invalid refresh token",
        "auth.user_not_found": "User not found",
        "auth.verification_sent": "If an account exists, a verification email has been sent",
        "auth.already_verified": "Email is already verified",
        "auth.email_verified": "Email verified successfully",
        "auth.verification_expired": "Verification link has expired",
        "auth.verification_invalid": "Invalid verification link",
        "auth.reset_link_sent": "If an account exists, a password reset link has been sent",
        "auth.reset_expired": "Password reset link has expired",
        "auth.reset_invalid": "Invalid password reset link",
        "auth.reset_notfound": "Password reset link not found",
        "auth.reset_used": "Password reset link has already been used",
        "auth.reset_mismatch": "Password reset link does not match the latest request",
        "auth.reset_valid": "Password reset link is valid",
        "auth.password_reset_success": "Password has been reset successfully",
        "auth.password_changed": "Password changed successfully",
        "auth.wrong_current_password": "Current password is incorrect",
        "auth.no_local_password": "This account has no password. Please use Google sign-in.",
        "auth.oauth_not_configured": "Google sign-in is not configured",
        "auth.oauth_failed": "Google sign-in failed",
        "auth.token_refreshed": "Token refreshed successfully",
        # chat
        "chat.message_sent": "Message sent successfully",
        "chat.not_found": "Chat not found",
        "chat.message_not_found": "Message not found",
        "chat.message_required": "Message is required",
        "chat.message_too_long": "Message cannot exceed 4000 characters",
        "chat.invalid_model": "Invalid model selected",
        "chat.no_previous_user_message": "No previous user message found",
        "chat.feedback_assistant_only": "Feedback can only be given on assistant messages",
        "chat.invalid_feedback": "Feedback must be 'like' or 'dislike'",
        "chat.feedback_saved": "Feedback saved",
        "chat.title_required": "Title is required",
        "chat.title_too_long": "Title cannot exceed 255 characters",
        "chat.invalid_export_format": "Invalid export format",
        "chat.created": "Chat created successfully",
        "chat.retrieved": "Chat retrieved successfully",
        "chat.history_retrieved": "Chat history retrieved successfully",
        "chat.updated": "Chat updated successfully",
        "chat.renamed": "Chat renamed successfully",
        "chat.archived": "Chat archived",
        "chat.unarchived": "Chat unarchived",
        "chat.deleted": "Chat deleted successfully",
        "chat.message_edited": "Message edited successfully",
        "chat.message_regenerated": "Response regenerated successfully",
        "chat.ai_failed": "Failed to generate AI response",
        "chat.new_chat_title": "New Chat",
        # user
        "user.profile_retrieved": "Profile retrieved successfully",
        "user.profile_updated": "Profile updated successfully",
        "user.email_taken": "This email is already in use",
        "user.username_taken": "This username is already taken",
        "user.avatar_required": "No file uploaded",
        "user.avatar_invalid_type": "Only JPEG, PNG and GIF images are allowed",
        "user.avatar_too_large": "File is too large. Maximum size is 5MB",
        "user.avatar_updated": "Avatar updated successfully",
        "user.avatar_removed": "Avatar removed successfully",
        "user.preferences_updated": "Preferences updated successfully",
        "user.summary_retrieved": "Summary retrieved successfully",
        "user.summary_none": "No summary available yet",
        "user.summary_no_chats": "You need at least one conversation to generate a summary",
        "user.summary_generated": "Summary generated successfully",
        "user.statistics_retrieved": "Statistics retrieved successfully",
        "user.password_required": "Password is required to delete your account",
        "user.wrong_password": "Incorrect password",
        "user.account_deleted": "Account deleted successfully",
        "user.invalid_export_format": "Invalid export format",
        "user.new_user_summary": "New user",
        # rate limits
        "rate_limit.auth": "Too many login attempts. Please try again later.",
        "rate_limit.api": "You have exceeded the rate limit. Please try again later.",
        "rate_limit.chat": "You are sending messages too quickly. Please slow down.",
        "rate_limit.upload": "You have exceeded the upload limit. Please try again later.",
        "rate_limit.ai_summary": "You have exceeded the AI summary generation limit. Please try again later.",
        "rate_limit.strict": "Too many requests for this operation. Please try again later.",
    },
    "ar": {
        "errors.validation": "خطأ في التحقق من البيانات",
        "errors.conflict": "يوجد سجل بنفس {field} بالفعل",
        "errors.not_found": "المورد غير موجود",
        "errors.permission": "تم رفض الإذن",
        "errors.internal": "خطأ داخلي في الخادم",
        "errors.unauthorized": "المصادقة مطلوبة",
        "errors.email_failed": "تعذر إرسال البريد الإلكتروني. يرجى المحاولة لاحقًا.",
        "errors.rate_limited": "طلبات كثيرة جدًا، يرجى المحاولة لاحقًا",
        "auth.signup_success": "تم إنشاء الحساب. يرجى التحقق من بريدك الإلكتروني لتفعيل حسابك.",
        "auth.login_success": "تم تسجيل الدخول بنجاح",
        "auth.logout_success": "تم تسجيل الخروج بنجاح",
        "auth.email_exists": "يوجد حساب بهذا البريد الإلكتروني بالفعل",
        "auth.username_exists": "اسم المستخدم هذا مستخدم بالفعل",
        "auth.invalid_credentials": "البريد الإلكتروني أو كلمة المرور غير صحيحة",
        "auth.use_google_login": "هذا الحساب يستخدم تسجيل الدخول عبر Google. يرجى تسجيل الدخول باستخدام Google.",
        "auth.account_locked": "تم قفل الحساب مؤقتًا بسبب كثرة محاولات تسجيل الدخول الفاشلة",
        "auth.email_not_verified": "يرجى تأكيد بريدك الإلكتروني. تم إرسال رابط تحقق جديد.",
        "auth.account_inactive": "حسابك غير نشط",
        "auth.token_required": "رمز المصادقة مطلوب",
        "auth.invalid_token": "رمز غير صالح",
        "auth.token_expired": "انتهت صلاحية الرمز",
        "auth.refresh_invalid": "رمز التحديث غير صالح",
        "auth.user_not_found": "المستخدم غير موجود",
        "auth.verification_sent": "إذا كان الحساب موجودًا، فقد تم إرسال بريد التحقق",
        "auth.already_verified": "تم تأكيد البريد الإلكتروني بالفعل",
        "auth.email_verified": "تم تأكيد البريد الإلكتروني بنجاح",
        "auth.verification_expired": "انتهت صلاحية رابط التحقق",
        "auth.verification_invalid": "رابط التحقق غير صالح",
        "auth.reset_link_sent": "إذا كان الحساب موجودًا، فقد تم إرسال رابط إعادة تعيين كلمة المرور",
        "auth.reset_expired": "انتهت صلاحية رابط إعادة التعيين",
        "auth.reset_invalid": "رابط إعادة التعيين غير صالح",
        "auth.reset_notfound": "رابط إعادة التعيين غير موجود",
        "auth.reset_used": "تم استخدام رابط إعادة التعيين بالفعل",
        "auth.reset_mismatch": "رابط إعادة التعيين لا يطابق آخر طلب",
        "auth.reset_valid": "رابط إعادة التعيين صالح",
        "auth.password_reset_success": "تمت إعادة تعيين كلمة المرور بنجاح",
        "auth.password_changed": "تم تغيير كلمة المرور بنجاح",
        "auth.wrong_current_password": "كلمة المرور الحالية غير صحيحة",
        "auth.no_local_password": "لا يملك هذا الحساب كلمة مرور. يرجى استخدام تسجيل الدخول عبر Google.",
        "auth.oauth_not_configured": "تسجيل الدخول عبر Google غير مُعد",
        "auth.oauth_failed": "فشل تسجيل الدخول عبر Google",
        "auth.token_refreshed": "تم تحديث الرمز بنجاح",
        "chat.message_sent": "تم إرسال الرسالة بنجاح",
        "chat.not_found": "المحادثة غير موجودة",
        "chat.message_not_found": "الرسالة غير موجودة",
        "chat.message_required": "الرسالة مطلوبة",
        "chat.message_too_long": "لا يمكن أن تتجاوز الرسالة 4000 حرف",
        "chat.invalid_model": "النموذج المحدد غير صالح",
        "chat.no_previous_user_message": "لم يتم العثور على رسالة مستخدم سابقة",
        "chat.feedback_assistant_only": "يمكن تقييم رسائل المساعد فقط",
        "chat.invalid_feedback": "يجب أن يكون التقييم 'like' أو 'dislike'",
        "chat.feedback_saved": "تم حفظ التقييم",
        "chat.title_required": "العنوان مطلوب",
        "chat.title_too_long": "لا يمكن أن يتجاوز العنوان 255 حرفًا",
        "chat.invalid_export_format": "صيغة التصدير غير صالحة",
        "chat.created": "تم إنشاء المحادثة بنجاح",
        "chat.retrieved": "تم جلب المحادثة بنجاح",
        "chat.history_retrieved": "تم جلب سجل المحادثات بنجاح",
        "chat.updated": "تم تحديث المحادثة بنجاح",
        "chat.renamed": "تمت إعادة تسمية المحادثة بنجاح",
        "chat.archived": "تمت أرشفة المحادثة",
        "chat.unarchived": "تم إلغاء أرشفة المحادثة",
        "chat.deleted": "تم حذف المحادثة بنجاح",
        "chat.message_edited": "تم تعديل الرسالة بنجاح",
        "chat.message_regenerated": "تمت إعادة توليد الرد بنجاح",
        "chat.ai_failed": "فشل في توليد رد الذكاء الاصطناعي",
        "chat.new_chat_title": "محادثة جديدة",
        "user.profile_retrieved": "تم جلب الملف الشخصي بنجاح",
        "user.profile_updated": "تم تحديث الملف الشخصي بنجاح",
        "user.email_taken": "هذا البريد الإلكتروني مستخدم بالفعل",
        "user.username_taken": "اسم المستخدم هذا مستخدم بالفعل",
        "user.avatar_required": "لم يتم رفع أي ملف",
        "user.avatar_invalid_type": "يُسمح فقط بصور JPEG و PNG و GIF",
        "user.avatar_too_large": "الملف كبير جدًا. الحد الأقصى 5 ميغابايت",
        "user.avatar_updated": "تم تحديث الصورة الرمزية بنجاح",
        "user.avatar_removed": "تمت إزالة الصورة الرمزية بنجاح",
        "user.preferences_updated": "تم تحديث التفضيلات بنجاح",
        "user.summary_retrieved": "تم جلب الملخص بنجاح",
        "user.summary_none": "لا يوجد ملخص متاح بعد",
        "user.summary_no_chats": "تحتاج إلى محادثة واحدة على الأقل لإنشاء ملخص",
        "user.summary_generated": "تم إنشاء الملخص بنجاح",
        "user.statistics_retrieved": "تم جلب الإحصائيات بنجاح",
        "user.password_required": "كلمة المرور مطلوبة لحذف حسابك",
        "user.wrong_password": "كلمة المرور غير صحيحة",
        "user.account_deleted": "تم حذف الحساب بنجاح",
        "user.invalid_export_format": "صيغة التصدير غير صالحة",
        "user.new_user_summary": "مستخدم جديد",
        "rate_limit.auth": "محاولات تسجيل دخول كثيرة جدًا. يرجى المحاولة لاحقًا.",
        "rate_limit.api": "لقد تجاوزت حد الطلبات. يرجى المحاولة لاحقًا.",
        "rate_limit.chat": "أنت ترسل الرسائل بسرعة كبيرة. يرجى الإبطاء.",
        "rate_limit.upload": "لقد تجاوزت حد الرفع. يرجى المحاولة لاحقًا.",
        "rate_limit.ai_summary": "لقد تجاوزت حد إنشاء ملخصات الذكاء الاصطناعي. يرجى المحاولة لاحقًا.",
        "rate_limit.strict": "طلبات كثيرة جدًا لهذه العملية. يرجى المحاولة لاحقًا.",
    },
}


def normalize_language(value: str | None) -> str | None:
    """Reduce ``ar-SA`` / ``en-US,en;q=0.9`` style values to a supported code."""
    if not value:
        return None
    code = value.split(",")[0].split(";")[0].strip().lower()[:2]
    return code if code in SUPPORTED_LANGUAGES else None


def translate(key: str, language: str | None = None, **params) -> str:
    lang = language if language in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE
    template = MESSAGES[lang].get(key) or MESSAGES[DEFAULT_LANGUAGE].get(key) or key
    if params:
        try:
            return template.format(**params)
        except (KeyError, IndexError):
            return template
    return template


def get_request_language(request: Request) -> str:
    """Resolve ``?lng=``, then the authenticated user, then Accept-Language."""
    query_lang = normalize_language(request.query_params.get("lng"))
    if query_lang:
        return query_lang

    user_lang = normalize_language(getattr(request.state, "language", None))
    if user_lang:
        return user_lang

    header_lang = normalize_language(request.headers.get("accept-language"))
    return header_lang or DEFAULT_LANGUAGE


def request_text(request: Request, key: str, **params) -> str:
    return translate(key, get_request_language(request), **params)
