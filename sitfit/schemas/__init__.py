"""Schema package exports."""

from .credits import (UNLIMITED_CREDITS, PaymentRecord, PaymentStatus, Plan,
                      SubscriptionStatusResponse, SubscriptionType, UserCredits)
from .payments import (CreateOrderRequest, OrderHandle, ProviderOrder,
                       VerifyPaymentRequest, VerifyPaymentResponse)
from .tryon import (GarmentType, GenerationResult, TryOnHistoryResponse,
                    TryOnRequest, TryOnResult, TryOnStatus)
from .weather import (CurrentWeatherResponse, DailyForecast,
                      OutfitSuggestions, WeatherReport)
