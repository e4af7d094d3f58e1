from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, Campaign, Donation, Review, Ticket, NgoVerification
from .services import review_ngo_verification


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'first_name', 'last_name', 'role', 'is_ngo', 'is_active']
    list_filter = ['role', 'is_ngo', 'is_active', 'is_staff']
    search_fields = ['email', 'first_name', 'last_name']
    ordering = ['-created_at']

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Personal info', {'fields': ('first_name', 'last_name', 'phone_number')}),
        ('Role & Permissions', {'fields': ('role', 'is_ngo', 'is_active', 'is_staff', 'is_superuser')}),
        ('Important dates', {'fields': ('last_login', 'created_at', 'updated_at')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2', 'first_name', 'last_name', 'role'),
        }),
    )

    readonly_fields = ['created_at', 'updated_at', 'last_login']


@admin.register(Campaign)
class CampaignAdmin(admin.ModelAdmin):
    list_display = ['unique_code', 'title', 'cause', 'target_amount', 'collected_amount', 'verified', 'created_at']
    list_filter = ['cause', 'verified', 'is_temporary', 'created_at']
    search_fields = ['unique_code', 'title', 'beneficiary_name', 'created_by__email']
    ordering = ['-created_at']
    # The ledger total only moves through recorded donations.
    readonly_fields = ['unique_code', 'collected_amount', 'created_at', 'updated_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('unique_code', 'title', 'description', 'cause', 'beneficiary_name', 'image_url')
        }),
        ('Funding', {
            'fields': ('target_amount', 'collected_amount')
        }),
        ('Verification', {
            'fields': ('hospital_name', 'hospital_email', 'is_temporary', 'verified')
        }),
        ('Ownership', {
            'fields': ('created_by', 'created_at', 'updated_at')
        }),
    )


@admin.register(Donation)
class DonationAdmin(admin.ModelAdmin):
    list_display = ['campaign', 'amount', 'tip_amount', 'donor_name', 'donor', 'created_at']
    list_filter = ['created_at']
    search_fields = ['campaign__unique_code', 'campaign__title', 'donor_name', 'donor__email']
    ordering = ['-created_at']
    readonly_fields = ['campaign', 'amount', 'tip_amount', 'donor', 'created_at']


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ['reviewer_name', 'rating', 'created_at']
    list_filter = ['rating', 'created_at']
    search_fields = ['reviewer_name', 'comment']
    ordering = ['-created_at']
    readonly_fields = ['created_at']


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ['subject', 'name', 'email', 'status', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['subject', 'message', 'name', 'email']
    ordering = ['-created_at']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(NgoVerification)
class NgoVerificationAdmin(admin.ModelAdmin):
    list_display = ['organization_name', 'user', 'registration_number', 'verified', 'requested_at', 'reviewed_at']
    list_filter = ['verified', 'requested_at']
    search_fields = ['organization_name', 'registration_number', 'user__email']
    ordering = ['-requested_at']
    readonly_fields = ['requested_at', 'reviewed_at']
    actions = ['approve_selected', 'reject_selected']

    @admin.action(description='Approve selected requests')
    def approve_selected(self, request, queryset):
        for verification in queryset.select_related('user'):
            review_ngo_verification(verification, True)

    @admin.action(description='Reject selected requests')
    def reject_selected(self, request, queryset):
        for verification in queryset.select_related('user'):
            review_ngo_verification(verification, False)
