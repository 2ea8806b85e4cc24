"""User-facing notification texts (Turkish)."""

LOGIN_REQUIRED = "Giriş yapmanız gerekiyor"
GENERIC_ERROR = "Bir hata oluştu"

FETCH_FAILED = "Yer imleri yüklenirken hata oluştu"
BOOKMARK_ADDED = "Yer imi eklendi"
BOOKMARK_UPDATED = "Yer imi güncellendi"
BOOKMARK_DELETED = "Yer imi silindi"
BOOKMARK_NOT_FOUND = "Yer imi bulunamadı"

DRAFT_SAVED = "Yer imi kaydedildi!"
DRAFT_SAVE_FAILED = "Yer imi kaydedilemedi"
METADATA_FETCHED = "Meta veriler başarıyla alındı"
METADATA_FAILED = "Meta veriler alınamadı"

SIGN_UP_SUCCEEDED = "Kayıt başarılı! Lütfen email adresinizi doğrulayın."
SIGN_IN_SUCCEEDED = "Giriş başarılı!"
SIGNED_OUT = "Çıkış yapıldı"
EMAIL_CONFIRMED = "Email adresiniz doğrulandı. Giriş yapabilirsiniz."

SIGN_UP_FAILED = "Kayıt işlemi başarısız oldu"
EMAIL_IN_USE = "Bu email adresi zaten kullanılıyor"
EMAIL_NOT_AUTHORIZED = "Lütfen geçerli bir email adresi kullanın"
EMAIL_NOT_CONFIRMED = "Lütfen önce email adresinizi doğrulayın"
INVALID_CREDENTIALS = "Email veya şifre hatalı"
