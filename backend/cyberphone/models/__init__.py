from .accounts import User, PaymentCard, WalletTransaction, UserFollow, SessionToken
from .content import Post, PostEngagement, PostReaction, PostComment, AudioTrack, LiveAccess
from .catalog import Store, Product, ProductRating
from .commerce import CartItem, AffiliateSale, AffiliateLink
from .communications import Notification, Event, event_attendees
from .advertising import AdCampaign

__all__ = [
    'User', 'PaymentCard', 'WalletTransaction', 'UserFollow', 'SessionToken',
    'Post', 'PostEngagement', 'PostReaction', 'PostComment', 'AudioTrack', 'LiveAccess',
    'Store', 'Product', 'ProductRating',
    'CartItem', 'AffiliateSale', 'AffiliateLink',
    'Notification', 'Event', 'event_attendees',
    'AdCampaign',
]
